from django.urls import path

from . import collection_api

urlpatterns = [
    path("data-collection/submit", collection_api.submit_field_data, name="data-collection-submit"),
    path("data-collection/draft", collection_api.draft_submission, name="data-collection-draft"),
    path("data-collection/villages", collection_api.villages_collection, name="data-collection-villages"),
    path(
        "data-collection/villages/<str:village_code>",
        collection_api.village_detail,
        name="data-collection-village-detail",
    ),
    path("data-collection/entries", collection_api.data_entries_collection, name="data-collection-entries"),
    path("data-collection/audit-logs", collection_api.audit_logs_collection, name="data-collection-audit-logs"),
    path("data-collection/batch-import", collection_api.batch_import, name="data-collection-batch-import"),
]

from typing import Any, Dict, Optional

from .models import DraftSubmission
from .store import RegistryStore, Transaction


class DraftStore:
    """Resumable multi-step submissions, one per (village, user).

    The unique constraint on that pair is what keeps a single live draft;
    saves are last-write-wins with no version check.
    """

    def __init__(self, store: RegistryStore):
        self.store = store

    def save(self, village_code: str, user_id: int, step: int, payload: Dict[str, Any]) -> DraftSubmission:
        with self.store.atomic() as tx:
            draft, _ = tx.objects(DraftSubmission).update_or_create(
                village_code=village_code,
                user_id=user_id,
                defaults={"current_step": step, "form_data": payload},
            )
        return draft

    def load(self, village_code: str, user_id: int) -> Optional[DraftSubmission]:
        return (
            self.store.reader()
            .objects(DraftSubmission)
            .filter(village_code=village_code, user_id=user_id)
            .first()
        )

    def delete(self, village_code: str, user_id: int, *, tx: Optional[Transaction] = None) -> int:
        handle = tx or self.store.reader()
        deleted, _ = handle.objects(DraftSubmission).filter(village_code=village_code, user_id=user_id).delete()
        return deleted


def serialize_draft(draft: Optional[DraftSubmission]) -> Optional[Dict[str, Any]]:
    if draft is None:
        return None
    return {
        "step": draft.current_step,
        "data": draft.form_data,
        "updatedAt": draft.updated_at.isoformat() if draft.updated_at else None,
    }

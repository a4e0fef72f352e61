from django.test import SimpleTestCase

from housing_registry.validation import validate_submission

ALL = ["house_basic", "house_construction", "craftsman_info"]


def _fields(violations):
    return [item["field"] for item in violations]


class BusinessRuleTests(SimpleTestCase):
    def test_minimal_payload_is_valid(self):
        self.assertEqual(validate_submission({"address": "A1", "applicantName": "张三"}, ["house_basic"]), [])

    def test_all_violations_are_reported(self):
        violations = validate_submission(
            {
                "address": " ",
                "applicantName": "",
                "phone": "12345",
                "idNumber": "1234",
                "startDate": "2024-05-01",
                "expectedCompletionDate": "2024-04-01",
            },
            ALL,
        )
        self.assertEqual(
            _fields(violations),
            ["address", "applicantName", "phone", "idNumber", "expectedCompletionDate"],
        )

    def test_in_progress_needs_start_date_only_with_construction_template(self):
        data = {"address": "A1", "applicantName": "Zhang", "constructionStatus": "IN_PROGRESS"}
        self.assertEqual(_fields(validate_submission(data, ["house_basic", "house_construction"])), ["startDate"])
        self.assertEqual(validate_submission(data, ["house_basic"]), [])

    def test_template_aliases_are_honoured(self):
        data = {"address": "A1", "applicantName": "Zhang", "constructionStatus": "建设中"}
        self.assertEqual(_fields(validate_submission(data, ["basic", "construction"])), ["startDate"])

    def test_waived_templates_drop_their_required_fields(self):
        data = {"address": "A1", "applicantName": "Zhang", "constructionStatus": "建设中", "phone": "123"}
        violations = validate_submission(data, ALL, waived=["construction", "craftsman"])
        self.assertEqual(_fields(violations), ["phone"])

    def test_under_construction_with_craftsman_template_needs_a_craftsman(self):
        data = {
            "address": "A1",
            "applicantName": "Zhang",
            "constructionStatus": "UNDER_CONSTRUCTION",
            "startDate": "2024-01-01",
        }
        self.assertEqual(_fields(validate_submission(data, ALL)), ["craftsmanId"])
        data["craftsmanId"] = "a3c1"
        self.assertEqual(validate_submission(data, ALL), [])

    def test_new_craftsman_requires_valid_phone_and_id_number(self):
        data = {"address": "A1", "applicantName": "Zhang", "isNewCraftsman": True, "craftsmanName": "李师傅"}
        self.assertEqual(_fields(validate_submission(data, ["house_basic"])), ["craftsmanPhone", "craftsmanIdNumber"])
        data.update({"craftsmanPhone": "1380013800", "craftsmanIdNumber": "37021219800101123"})
        self.assertEqual(_fields(validate_submission(data, ["house_basic"])), ["craftsmanPhone", "craftsmanIdNumber"])
        data.update({"craftsmanPhone": "13800138000", "craftsmanIdNumber": "37021219800101123X"})
        self.assertEqual(validate_submission(data, ["house_basic"]), [])

    def test_id_number_accepts_trailing_x(self):
        data = {"address": "A1", "applicantName": "Zhang", "idNumber": "11010119900101123X", "phone": "13912345678"}
        self.assertEqual(validate_submission(data, ALL), [])

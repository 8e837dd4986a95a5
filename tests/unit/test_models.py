"""Unit tests for SiteProof request payload models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from siteproof.models import (
    ConformanceSave,
    CreateFromTemplate,
    ITPTemplateCreate,
    ITPUpdate,
    LotCreate,
    MaterialsDocketCreate,
    ProjectCreate,
    ProjectUpdate,
)


class TestPayloadKeys:
    """camelCase and snake_case keys are both accepted."""

    def test_camel_case_keys(self):
        project_id = uuid4()
        lot = LotCreate.model_validate({"projectId": str(project_id), "lotNumber": "L-01"})

        assert lot.project_id == project_id
        assert lot.lot_number == "L-01"

    def test_snake_case_keys(self):
        project_id = uuid4()
        lot = LotCreate.model_validate({"project_id": str(project_id), "lot_number": "L-01"})

        assert lot.project_id == project_id

    def test_blank_strings_are_absent(self):
        """Empty form fields fall back to defaults instead of failing validation."""
        lot = LotCreate.model_validate(
            {"projectId": str(uuid4()), "lotNumber": "L-01", "itpTemplateId": "", "description": "  "}
        )

        assert lot.itp_template_id is None
        assert lot.description is None

    def test_blank_required_field_is_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            ProjectCreate.model_validate({"name": "   "})

        assert exc_info.value.errors()[0]["type"] == "missing"

    def test_unknown_keys_ignored(self):
        project = ProjectCreate.model_validate({"name": "Bridge", "colour": "blue"})

        assert project.name == "Bridge"


class TestProjectCreate:
    def test_name_is_stripped(self):
        assert ProjectCreate.model_validate({"name": "  Bridge  "}).name == "Bridge"

    def test_name_max_length(self):
        with pytest.raises(ValidationError):
            ProjectCreate.model_validate({"name": "x" * 101})

    def test_description_max_length(self):
        with pytest.raises(ValidationError):
            ProjectCreate.model_validate({"name": "Bridge", "description": "x" * 501})

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            ProjectCreate.model_validate(
                {"name": "Bridge", "startDate": "2024-05-01", "endDate": "2024-04-01"}
            )

        assert "End date cannot be before start date" in str(exc_info.value)

    def test_dates_parsed(self):
        project = ProjectCreate.model_validate(
            {"name": "Bridge", "startDate": "2024-04-01", "endDate": "2024-05-01"}
        )

        assert project.start_date == date(2024, 4, 1)

    def test_update_status_is_normalised(self):
        assert ProjectUpdate.model_validate({"status": "On Hold"}).status == "on_hold"

    def test_update_blank_or_null_clears_optional_fields(self):
        update = ProjectUpdate.model_validate({"description": "", "location": None, "endDate": " "})

        assert update.model_dump(exclude_unset=True) == {"description": None, "location": None, "end_date": None}

    def test_update_blank_name_and_status_are_ignored(self):
        update = ProjectUpdate.model_validate({"name": "  ", "status": ""})

        assert update.model_dump(exclude_unset=True) == {}


class TestITPPayloads:
    def test_template_items_default_type(self):
        template = ITPTemplateCreate.model_validate(
            {"name": "Earthworks", "items": [{"description": "Compaction test"}]}
        )

        assert template.items[0].item_type == "pass_fail"
        assert template.items[0].is_mandatory is True
        assert template.items[0].order_index is None

    def test_item_type_rejects_unknown(self):
        with pytest.raises(ValidationError):
            ITPTemplateCreate.model_validate(
                {"name": "Earthworks", "items": [{"description": "x", "itemType": "colour"}]}
            )

    @pytest.mark.parametrize("key", ["templateId", "template_id", "itpTemplateId"])
    def test_create_from_template_aliases(self, key):
        template_id = uuid4()
        data = CreateFromTemplate.model_validate({key: str(template_id), "lotId": str(uuid4())})

        assert data.template_id == template_id

    def test_itp_update_name_alias(self):
        assert ITPUpdate.model_validate({"name": "Pour 3"}).instance_name == "Pour 3"


class TestConformanceSave:
    def test_defaults_to_pending(self):
        data = ConformanceSave.model_validate({"lotId": str(uuid4()), "itpItemId": str(uuid4())})

        assert data.status == "pending"

    @pytest.mark.parametrize(
        "raw,expected",
        [("PASS", "pass"), ("Fail", "fail"), ("N/A", "na"), ("na", "na")],
    )
    def test_status_normalised(self, raw, expected):
        data = ConformanceSave.model_validate(
            {"lotId": str(uuid4()), "itpItemId": str(uuid4()), "resultPassFail": raw}
        )

        assert data.status == expected

    def test_comments_alias_for_notes(self):
        data = ConformanceSave.model_validate(
            {"lotId": str(uuid4()), "itpItemId": str(uuid4()), "comments": "Checked twice"}
        )

        assert data.notes == "Checked twice"

    def test_invalid_item_id(self):
        with pytest.raises(ValidationError):
            ConformanceSave.model_validate({"lotId": str(uuid4()), "itpItemId": "not-a-uuid"})

    def test_numeric_result_from_string(self):
        data = ConformanceSave.model_validate(
            {"lotId": str(uuid4()), "itpItemId": str(uuid4()), "resultNumeric": "42.5"}
        )

        assert data.result_numeric == Decimal("42.5")
        assert isinstance(data.lot_id, UUID)


class TestDockets:
    def test_materials_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            MaterialsDocketCreate.model_validate(
                {
                    "lotId": str(uuid4()),
                    "deliveryDate": "2024-04-01",
                    "materialType": "Concrete",
                    "quantity": "0",
                }
            )

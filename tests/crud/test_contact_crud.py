"""
Tests for contact CRUD status rules.
"""

from datetime import datetime, timezone

import pytest

from app import crud
from app.core.exceptions import DuplicateIdempotentWrite
from app.models.public_feed import PublicDonor
from tests.utils.fundraiser import create_contact, create_fundraiser

EVENT_AT = datetime(2024, 1, 2, 2, 31, tzinfo=timezone.utc)


class TestContactCreate:

    def test_email_is_normalized(self, db):
        _, _, athlete = create_fundraiser(db)

        contact = create_contact(db, athlete, "  Ann@Example.COM ")

        assert contact.email == "Ann@Example.COM"
        assert contact.email_lower == "ann@example.com"
        assert contact.status == "draft"


class TestMarkDonated:

    def test_matches_case_insensitively_within_athlete(self, db):
        org, _, athlete = create_fundraiser(db)
        _, _, other_athlete = create_fundraiser(db)
        mine = create_contact(db, athlete, "Ann@Example.com", status="sent")
        bounced = create_contact(db, athlete, "ann@example.com", status="bounced")
        theirs = create_contact(db, other_athlete, "ann@example.com")

        changed = crud.contact.mark_donated(
            db, org_id=org.id, athlete_id=athlete.id, email=" ANN@example.com "
        )

        assert changed == 2
        db.refresh(mine)
        db.refresh(bounced)
        db.refresh(theirs)
        assert mine.status == "donated"
        assert bounced.status == "donated"
        assert theirs.status == "draft"

    def test_already_donated_is_not_counted(self, db):
        org, _, athlete = create_fundraiser(db)
        create_contact(db, athlete, "ann@example.com", status="donated")

        changed = crud.contact.mark_donated(
            db, org_id=org.id, athlete_id=athlete.id, email="ann@example.com"
        )

        assert changed == 0


class TestRecordDeliveryEvent:

    def test_error_cleared_on_delivery(self, db):
        _, _, athlete = create_fundraiser(db)
        contact = create_contact(db, athlete, "ann@example.com", status="sent")
        contact.last_delivery_error = "Mailbox full"
        db.commit()

        updated = crud.contact.record_delivery_event(
            db,
            contact=contact,
            event_type="delivered",
            event_at=EVENT_AT,
            new_status="sent",
            clear_error=True,
        )

        assert updated.last_delivery_error is None
        assert updated.bounce_count == 0

    def test_unknown_event_only_records_delivery_fields(self, db):
        _, _, athlete = create_fundraiser(db)
        contact = create_contact(db, athlete, "ann@example.com")

        updated = crud.contact.record_delivery_event(
            db, contact=contact, event_type="opened", event_at=EVENT_AT
        )

        assert updated.status == "draft"
        assert updated.last_delivery_event == "opened"


class TestCreateIfAbsent:

    def test_second_insert_raises(self, db):
        def donor():
            return PublicDonor(
                id="sess_1", campaign_id="cmp_1", display_name="Pat", amount_cents=5000
            )

        crud.public_donor.create_if_absent(db, db_obj=donor())

        with pytest.raises(DuplicateIdempotentWrite) as exc_info:
            crud.public_donor.create_if_absent(db, db_obj=donor())

        assert exc_info.value.table == "public_donors"
        assert exc_info.value.key == "sess_1"

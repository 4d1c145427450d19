"""
Unit tests for proposal field validation.

Validation runs before any database access, so these tests need no session.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from gighub.services.proposalService import ProposalInput, is_expired, validate_proposal
from gighub.services.results import ErrorCode
from gighub.core.messages import translate


def _input(**overrides) -> ProposalInput:
    values = {
        "gig_id": uuid.uuid4(),
        "proposal_title": "Logo redesign",
        "proposal_description": "Three concepts and two revision rounds",
        "proposed_price": Decimal("80.00"),
        "timeline_days": 5,
        "deliverables": ["Three concepts", "Final SVG"],
    }
    values.update(overrides)
    return ProposalInput(**values)


class TestValidateProposal:

    def test_valid_proposal(self):
        assert validate_proposal(_input()) is None

    @pytest.mark.parametrize(
        "overrides, key",
        [
            ({"proposal_title": "   "}, "missing_title"),
            ({"proposal_description": ""}, "missing_description"),
            ({"proposed_price": Decimal("0")}, "invalid_price"),
            ({"proposed_price": Decimal("-10")}, "invalid_price"),
            ({"timeline_days": 0}, "invalid_timeline"),
            ({"deliverables": []}, "missing_deliverables"),
            ({"deliverables": ["", "  "]}, "missing_deliverables"),
        ],
    )
    def test_invalid_fields(self, overrides, key):
        error = validate_proposal(_input(**overrides), "en")
        assert error is not None
        assert error.code == ErrorCode.VALIDATION
        assert error.message == translate(key, "en")

    def test_title_checked_before_price(self):
        error = validate_proposal(
            _input(proposal_title="", proposed_price=Decimal("0")), "en"
        )
        assert error.message == translate("missing_title", "en")

    def test_non_numeric_price(self):
        error = validate_proposal(_input(proposed_price="abc"), "en")
        assert error.message == translate("invalid_price", "en")

    def test_message_is_localised(self):
        en = validate_proposal(_input(timeline_days=-1), "en")
        pt = validate_proposal(_input(timeline_days=-1), "pt")
        assert en.message != pt.message

    def test_past_expiry_is_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        error = validate_proposal(_input(expires_at=past), "en")
        assert error.code == ErrorCode.VALIDATION
        assert error.message == translate("invalid_expiry", "en")

    def test_future_expiry_is_accepted(self):
        future = datetime.now(timezone.utc) + timedelta(days=3)
        assert validate_proposal(_input(expires_at=future)) is None


class TestIsExpired:

    NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_no_expiry_never_expires(self):
        assert is_expired(None, self.NOW) is False

    def test_boundary_counts_as_expired(self):
        assert is_expired(self.NOW, self.NOW) is True
        assert is_expired(self.NOW + timedelta(seconds=1), self.NOW) is False

    def test_naive_timestamp_is_read_as_utc(self):
        assert is_expired(datetime(2024, 6, 1, 11, 59), self.NOW) is True
        assert is_expired(datetime(2024, 6, 1, 12, 1), self.NOW) is False

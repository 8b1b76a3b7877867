"""Tests for the sign-up wizard state machine."""

import pytest

from fundspace.core.exceptions import ValidationError
from fundspace.wizard.machine import COMMUNITY_MEMBER, ImageUpload, SignupStep, SignUpWizard


def _wizard(**fields) -> SignUpWizard:
    wizard = SignUpWizard(min_password_length=6)
    if fields:
        wizard.update(**fields)
    return wizard


PERSONAL = {"full_name": "Ada Lovelace", "email": "ada@example.org", "password": "secret1"}


class TestPersonalInfo:
    def test_starts_on_step_one_of_six(self):
        wizard = _wizard()
        assert wizard.step == SignupStep.PERSONAL_INFO
        assert wizard.total_steps() == 6
        assert wizard.step_title() == "Account Information"

    def test_incomplete_step_blocks_next(self):
        wizard = _wizard(full_name="Ada", email="not-an-email", password="123")
        with pytest.raises(ValidationError) as excinfo:
            wizard.next()
        errors = excinfo.value.details["errors"]
        assert "A valid email address is required" in errors
        assert "Password must be at least 6 characters" in errors
        assert wizard.step == SignupStep.PERSONAL_INFO

    def test_blank_name_is_rejected(self):
        wizard = _wizard(**{**PERSONAL, "full_name": "   "})
        assert not wizard.is_step_valid()

    def test_valid_step_advances(self):
        wizard = _wizard(**PERSONAL)
        assert wizard.can_advance()
        assert wizard.next() == SignupStep.ORGANIZATION_TYPE


class TestCommunityMemberPath:
    def test_skips_organization_setup_both_ways(self):
        wizard = _wizard(**PERSONAL, organization_type=COMMUNITY_MEMBER)
        wizard.next()
        assert wizard.next() == SignupStep.LOCATION
        assert wizard.display_step() == 3
        assert wizard.total_steps() == 5
        assert wizard.back() == SignupStep.ORGANIZATION_TYPE

    def test_becoming_a_community_member_on_setup_moves_to_location(self):
        wizard = _wizard(**PERSONAL, organization_type="nonprofit")
        wizard.next()
        wizard.next()
        assert wizard.step == SignupStep.ORGANIZATION_SETUP
        wizard.update(organization_type=COMMUNITY_MEMBER)
        assert wizard.step == SignupStep.LOCATION

    def test_last_step_and_progress(self):
        wizard = _wizard(**PERSONAL, organization_type=COMMUNITY_MEMBER, location=["Oakland"])
        for _ in range(4):
            wizard.next()
        assert wizard.step == SignupStep.FOLLOW_USERS
        assert wizard.is_last_step()
        assert wizard.progress() == 1.0
        assert not wizard.can_advance()
        assert wizard.next() == SignupStep.FOLLOW_USERS


class TestOrganizationSetup:
    def _at_setup(self, **fields) -> SignUpWizard:
        wizard = _wizard(**PERSONAL, organization_type="nonprofit", **fields)
        wizard.next()
        wizard.next()
        return wizard

    def test_reports_three_of_six(self):
        wizard = self._at_setup()
        assert wizard.step == SignupStep.ORGANIZATION_SETUP
        assert (wizard.display_step(), wizard.total_steps()) == (3, 6)
        assert wizard.progress() == pytest.approx(0.5)

    def test_choice_is_required(self):
        result = self._at_setup().validate_step()
        assert result.errors == ["Choose to create or join an organization"]

    def test_create_needs_name_and_classification(self):
        wizard = self._at_setup(organization_choice="create")
        assert len(wizard.validate_step().errors) == 2
        wizard.update(new_organization={"name": "Mission Food"})
        wizard.update(new_organization={"taxonomy_code": "nonprofit.501c3"})
        assert wizard.form.new_organization.name == "Mission Food"
        assert wizard.is_step_valid()

    def test_join_needs_a_selected_organization(self):
        wizard = self._at_setup(organization_choice="join")
        assert not wizard.is_step_valid()
        wizard.update(selected_organization={"id": 42, "type": "nonprofit", "name": "Oakland Youth Arts"})
        assert wizard.form.selected_organization.id == "42"
        assert wizard.is_step_valid()


def test_location_needs_at_least_one_entry():
    wizard = _wizard(location="")
    assert not wizard.is_step_valid(SignupStep.LOCATION)
    wizard.update(location="Fremont")
    assert wizard.form.location == ["Fremont"]
    assert wizard.is_step_valid(SignupStep.LOCATION)


def test_interests_and_follows_are_optional():
    wizard = _wizard()
    assert wizard.is_step_valid(SignupStep.INTERESTS)
    assert wizard.is_step_valid(SignupStep.FOLLOW_USERS)


def test_unknown_field_is_rejected():
    with pytest.raises(ValidationError):
        _wizard(favourite_colour="green")


def test_back_from_first_step_stays():
    assert _wizard().back() == SignupStep.PERSONAL_INFO


class TestSnapshotRestore:
    def test_snapshot_drops_password_and_images(self):
        wizard = _wizard(**PERSONAL, avatar=ImageUpload(data=b"img"),
                         new_organization={"name": "Org", "logo": {"data": b"logo"}})
        snapshot = wizard.snapshot()
        assert "password" not in snapshot["form"]
        assert "avatar" not in snapshot["form"]
        assert "logo" not in snapshot["form"]["new_organization"]
        assert snapshot["form"]["new_organization"]["name"] == "Org"

    def test_restore_without_password_resumes_on_step_one(self):
        wizard = _wizard(**PERSONAL, organization_type=COMMUNITY_MEMBER, location=["Oakland"])
        for _ in range(3):
            wizard.next()
        restored = SignUpWizard.restore(wizard.snapshot(), min_password_length=6)
        assert restored.step == SignupStep.PERSONAL_INFO
        assert restored.form.full_name == "Ada Lovelace"

    def test_restore_with_password_resumes_on_saved_step(self):
        wizard = _wizard(**PERSONAL, organization_type=COMMUNITY_MEMBER, location=["Oakland"])
        for _ in range(3):
            wizard.next()
        restored = SignUpWizard.restore(wizard.snapshot(), password="secret1", min_password_length=6)
        assert restored.step == SignupStep.INTERESTS

    def test_restore_lands_on_first_incomplete_step(self):
        snapshot = {"step": 5, "form": {"full_name": "Ada", "email": "ada@example.org",
                                        "organization_type": "nonprofit", "organization_choice": "create"}}
        restored = SignUpWizard.restore(snapshot, password="secret1", min_password_length=6)
        assert restored.step == SignupStep.ORGANIZATION_SETUP

    def test_restore_ignores_bad_step_and_bad_form(self):
        assert SignUpWizard.restore({"step": 17}, min_password_length=6).step == SignupStep.PERSONAL_INFO
        assert SignUpWizard.restore({"step": "x"}, min_password_length=6).step == SignupStep.PERSONAL_INFO
        restored = SignUpWizard.restore({"step": 2, "form": {"unknown": True}}, min_password_length=6)
        assert restored.step == SignupStep.PERSONAL_INFO
        assert restored.form.full_name == ""
        assert SignUpWizard.restore(None, min_password_length=6).step == SignupStep.PERSONAL_INFO

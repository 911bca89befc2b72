from datetime import datetime, timedelta, timezone

import pytest

from conftest import ctx, days_ago, found_payload, lost_payload
from lostfound.models.enums import Category, Role
from lostfound.services import matching, workflow
from lostfound.services.errors import AuthorizationError
from lostfound.utils.form_validator import LostReportCreate


@pytest.fixture
def report(session, student):
    return workflow.create_lost_report(session, ctx(student), lost_payload()).data


def add_found(session, finder, **overrides):
    return workflow.create_found_item(session, ctx(finder), found_payload(**overrides)).data


def match_ids(session, user, report):
    return [item.id for item in workflow.get_matches(session, ctx(user), report["id"])]


def test_same_category_with_name_words_matches(session, student, staff, report):
    found = add_found(session, staff, item_name="Blue Wireless Earbuds", date_found=days_ago(5))

    assert match_ids(session, student, report) == [found.id]


def test_other_category_never_matches(session, student, staff, report):
    add_found(session, staff, item_name="Blue Earbuds", category=Category.BAG)

    assert match_ids(session, student, report) == []


def test_items_found_outside_thirty_days_are_ignored(session, student, staff, report):
    add_found(session, staff, item_name="Blue Wireless Earbuds", date_found=days_ago(40))

    assert match_ids(session, student, report) == []


def test_name_match_is_case_insensitive(session, student, staff, report):
    found = add_found(session, staff, item_name="BLUE EARBUDS (left one missing)")

    assert match_ids(session, student, report) == [found.id]


def test_description_prefix_matches_even_when_names_differ(session, student, staff, report):
    found = add_found(
        session,
        staff,
        item_name="Earphone case",
        description="Handed in at the desk. Lost my blue earbuds in a white case near the library, says the note",
    )

    assert match_ids(session, student, report) == [found.id]


def test_unrelated_text_does_not_match(session, student, staff, report):
    add_found(session, staff, item_name="Laptop charger", description="Black charger left in room 12")

    assert match_ids(session, student, report) == []


def test_results_are_newest_first_and_capped_at_five(session, student, staff, report):
    created = [
        add_found(session, staff, item_name=f"Blue Earbuds #{i}", date_found=days_ago(i + 1))
        for i in range(7)
    ]

    ids = match_ids(session, student, report)

    assert ids == [item.id for item in created[:5]]


def test_like_wildcards_in_names_are_literal(session, staff, make_user):
    owner = make_user(Role.STUDENT)
    wildcard = workflow.create_lost_report(
        session, ctx(owner), lost_payload(item_name="100%", description="Charger brick, fully charged 100%")
    ).data
    add_found(session, staff, item_name="1000 mAh power bank", description="Found a power bank in the hall")

    assert match_ids(session, owner, wildcard) == []


def test_matching_does_not_change_state(session, student, staff, report):
    add_found(session, staff)
    stored = workflow.get_lost_report(session, report["id"])
    before = stored.model_dump()

    matching.find_matches(session, stored)

    assert workflow.get_lost_report(session, report["id"]).model_dump() == before


def test_only_owner_or_moderators_see_matches(session, staff, report, make_user):
    with pytest.raises(AuthorizationError):
        workflow.get_matches(session, ctx(make_user(Role.STUDENT)), report["id"])

    assert workflow.get_matches(session, ctx(staff), report["id"]) == []


def test_client_dates_are_stored_in_utc():
    payload = lost_payload(date_lost="2026-03-01T22:30:00-05:00")

    assert payload.date_lost == datetime(2026, 3, 2, 3, 30, tzinfo=timezone.utc)
    assert LostReportCreate.model_validate(
        {**payload.model_dump(), "date_lost": "2026-03-01T10:00:00"}
    ).date_lost.tzinfo == timezone.utc


def test_match_window_uses_the_instant_not_the_local_wall_time(session, student, staff, report):
    # Inside the window by two hours, but written from a UTC-12 clock
    instant = datetime.now(timezone.utc) - timedelta(days=30) + timedelta(hours=2)
    far_west = instant.astimezone(timezone(timedelta(hours=-12)))

    found = add_found(session, staff, date_found=far_west)

    assert match_ids(session, student, report) == [found.id]

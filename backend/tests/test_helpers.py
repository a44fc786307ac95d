import re

import pytest

from portal_sync.db.schemas import ProcessPatch, coerce
from portal_sync.utils.exceptions import InvalidPatchError
from portal_sync.utils import helpers
from portal_sync.utils.helpers import generate_id, generate_process_number, truncate_text


class FixedDraws:
    """Stands in for the ``random`` module with a scripted sequence of draws."""

    def __init__(self, *values):
        self._values = iter(values)

    def randint(self, a, b):
        return next(self._values, a)


MILLIS = 1700000000000


@pytest.fixture
def frozen_millis(monkeypatch):
    monkeypatch.setattr(helpers, "epoch_millis", lambda: MILLIS)


def test_generated_ids_are_prefixed_and_unique_within_a_registry():
    taken = set()
    for _ in range(2000):
        taken.add(generate_id("NOT", taken=taken))

    assert len(taken) == 2000
    assert all(re.fullmatch(r"NOT\d{13,}", i) for i in taken)


def test_taken_id_is_redrawn(monkeypatch, frozen_millis):
    monkeypatch.setattr(helpers, "random", FixedDraws(5, 5, 6))

    assert generate_id("PROC", taken={f"PROC{MILLIS}5"}) == f"PROC{MILLIS}6"


def test_new_process_never_reuses_a_loaded_id(make_system, monkeypatch, frozen_millis):
    first = make_system()
    monkeypatch.setattr(helpers, "random", FixedDraws(5))
    loaded_id = first.create_process({"type": "Ação Civil"})
    first.save()

    second = make_system()
    monkeypatch.setattr(helpers, "random", FixedDraws(5, 6))
    new_id = second.create_process({"type": "Ação Penal"})

    assert loaded_id == f"PROC{MILLIS}5"
    assert new_id == f"PROC{MILLIS}6"
    assert len(second.get_processes()) == 2


def test_process_number_layout():
    number = generate_process_number(2025)

    match = re.fullmatch(r"(\d{7})-12\.2025\.8\.26\.0001", number)
    assert match is not None
    assert 1000000 <= int(match.group(1)) <= 1999998


def test_truncate_text():
    assert truncate_text("short") == "short"
    assert truncate_text("x" * 150, 10) == "x" * 10 + "..."


def test_coerce_rejects_unknown_fields():
    with pytest.raises(InvalidPatchError) as excinfo:
        coerce(ProcessPatch, {"status": "pending", "colour": "red"})

    assert "colour" in str(excinfo.value)


def test_notification_ids_skip_ids_already_in_the_log(system, monkeypatch, frozen_millis):
    monkeypatch.setattr(helpers, "random", FixedDraws(7))
    first = system.create_notification({"type": "info"})
    monkeypatch.setattr(helpers, "random", FixedDraws(7, 8))
    second = system.create_notification({"type": "info"})

    assert (first, second) == (f"NOT{MILLIS}7", f"NOT{MILLIS}8")

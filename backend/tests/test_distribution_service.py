from portal_sync.db.models import PORTAL_JUDICIAL, PORTAL_OVERSIGHT, ProcessStatus


def _pending(system, count, urgency=None):
    data = {"type": "Ação Civil", "plaintiff": "Autor"}
    if urgency:
        data["urgency"] = urgency
    return [system.create_process(data) for _ in range(count)]


def test_assigns_at_most_five_per_run(system, login_judge):
    _pending(system, 8)
    for judge in ("J1", "J2", "J3"):
        login_judge(judge)

    assert system.auto_distribute() == 5
    assert len(system.get_processes(status=ProcessStatus.pending)) == 3
    assert len(system.get_processes(status=ProcessStatus.in_progress)) == 5


def test_never_pushes_a_judge_above_ten(system, login_judge):
    login_judge("J1")
    for process_id in _pending(system, 9):
        system.assume_process(process_id, "J1", "Judge J1")
    _pending(system, 3)

    assert system.auto_distribute() == 1
    assert system.get_judge_workload("J1") == 10

    assert system.auto_distribute() == 0
    assert system.get_judge_workload("J1") == 10
    assert len(system.get_processes(status=ProcessStatus.pending)) == 2


def test_judge_at_cap_is_not_eligible(system, login_judge):
    login_judge("J1")
    for process_id in _pending(system, 10):
        system.assume_process(process_id, "J1", "Judge J1")
    _pending(system, 1)

    assert system.distribution.eligible_judges() == []
    assert system.auto_distribute() == 0


def test_most_urgent_process_goes_first(system, login_judge):
    low = _pending(system, 1, "baixa")[0]
    high = _pending(system, 1, "alta")[0]
    medium = _pending(system, 1, "media")[0]
    login_judge("J1")

    order = []
    system.add_event_listener(
        "process_updated",
        lambda data: order.append(data["process_id"]),
    )

    assert system.auto_distribute() == 3
    assert order == [high, medium, low]


def test_single_slot_takes_the_alta_process(make_system, test_settings):
    portal = make_system(settings=test_settings.model_copy(update={"MAX_PER_CYCLE": 1}))
    portal.create_process({"urgency": "baixa"})
    high = portal.create_process({"urgency": "alta"})
    portal.create_process({"urgency": "media"})
    portal.login_user({"id": "J1", "name": "Judge", "level": 5, "permissions": [PORTAL_JUDICIAL]})

    assert portal.auto_distribute() == 1
    assert portal.get_process(high).assigned_judge_id == "J1"


def test_least_loaded_judge_is_picked(system, login_judge):
    login_judge("J1")
    login_judge("J2")
    for process_id in _pending(system, 2):
        system.assume_process(process_id, "J1", "Judge J1")
    first = _pending(system, 1)[0]
    _pending(system, 2)

    assert system.auto_distribute() == 3

    assert system.get_process(first).assigned_judge_id == "J2"
    loads = [system.get_judge_workload("J1"), system.get_judge_workload("J2")]
    assert sum(loads) == 5
    assert abs(loads[0] - loads[1]) <= 1


def test_ineligible_users_are_skipped(system, login_judge):
    _pending(system, 2)
    login_judge("offline", online=False)
    login_judge("junior", level=3)
    login_judge("clerk", permissions=("portal-advogado",))

    assert system.auto_distribute() == 0
    assert not [n for n in system.get_notifications() if n.type == "auto_distribution"]


def test_summary_notification_after_distribution(system, login_judge):
    _pending(system, 2)
    login_judge("J1")

    system.auto_distribute()

    summary = [n for n in system.get_notifications() if n.type == "auto_distribution"]
    assert len(summary) == 1
    assert summary[0].message == "2 processes were distributed automatically"
    assert summary[0].target_portals == [PORTAL_OVERSIGHT, PORTAL_JUDICIAL]


def test_nothing_pending_means_no_summary(system, login_judge):
    login_judge("J1")
    assert system.auto_distribute() == 0
    assert not [n for n in system.get_notifications() if n.type == "auto_distribution"]

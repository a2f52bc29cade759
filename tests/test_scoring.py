from copy import deepcopy

import pytest

from triathlon_core import (
    ALL_GAME_IDS,
    EXTENDED_POINTS,
    STANDARD_POINTS,
    create_empty_document,
    empty_game_result,
    find_game,
    generate_schedule,
    recompute,
    recompute_document,
)


def _people(*ids):
    return [{"personId": pid, "displayName": pid.title()} for pid in ids]


def _doc(*ids, **kwargs):
    return create_empty_document("triathlon-2026", 2026, _people(*ids), updated_at="2026-05-01T10:00:00.000Z", **kwargs)


def _set_results(doc, game_id, **results):
    find_game(doc, game_id)["results"] = {pid: {**empty_game_result(), **r} for pid, r in results.items()}


def _field(doc, game_id, field):
    return {pid: r[field] for pid, r in find_game(doc, game_id)["results"].items()}


def _match(round_no, a, b, winner8, winner9=None):
    return {
        "round": round_no,
        "a": a,
        "b": b,
        "table": 1,
        "winner8Ball": winner8,
        "winner9Ball": winner9 if winner9 is not None else winner8,
    }


def _finalize(doc, *game_ids):
    for gid in game_ids:
        doc["finalizedGames"][gid] = True


def test_unfinalized_game_has_places_but_no_points():
    doc = _doc("a", "b", "c")
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150}, c={"raw": 100})
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "bowling-1", "place") == {"a": 1, "b": 2, "c": 3}
    assert _field(out, "bowling-1", "points") == {"a": None, "b": None, "c": None}
    assert out["totals"]["byCompetitor"]["a"]["overall"] == 0


def test_finalized_game_awards_points_and_totals():
    doc = _doc("a", "b", "c")
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150}, c={"raw": 100})
    _finalize(doc, "bowling-1")
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "bowling-1", "points") == {"a": 3, "b": 2, "c": 1}
    assert out["totals"]["byCompetitor"]["a"] == {
        "byDiscipline": {"bowling": 3, "pool": 0, "darts": 0},
        "overall": 3,
    }


def test_recompute_is_idempotent_and_pure():
    doc = _doc("a", "b", "c", event_meta={
        "competitorOrder": ["a", "b", "c"],
        "tables": [1],
        "schedule": generate_schedule(["a", "b", "c"], [1]),
    })
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150, "place": 3}, c={"raw": 150, "place": 2})
    _set_results(doc, "pool-3", a={"attempts": [10, 4]}, b={"attempts": [9, 0, 6]}, c={"attempts": [5, 9, 4]})
    _set_results(doc, "darts-1", a={"place": 1}, b={"place": 2}, c={"place": 2})
    doc["matches"] = [_match(1, "b", "c", "b")]
    _finalize(doc, *ALL_GAME_IDS)
    before = deepcopy(doc)

    once = recompute(doc, EXTENDED_POINTS)
    assert recompute(once, EXTENDED_POINTS) == once
    assert doc == before


def test_independent_edits_converge_regardless_of_order():
    base = _doc("a", "b")
    _finalize(base, "bowling-2")

    first = deepcopy(base)
    _set_results(first, "bowling-2", a={"raw": 180})
    first = recompute(first, STANDARD_POINTS)
    find_game(first, "bowling-2")["results"]["b"] = {**empty_game_result(), "raw": 190}
    first = recompute(first, STANDARD_POINTS)

    second = deepcopy(base)
    _set_results(second, "bowling-2", b={"raw": 190})
    second = recompute(second, STANDARD_POINTS)
    find_game(second, "bowling-2")["results"]["a"] = {**empty_game_result(), "raw": 180}
    second = recompute(second, STANDARD_POINTS)

    assert find_game(first, "bowling-2") == find_game(second, "bowling-2")
    assert first["totals"] == second["totals"]


def test_pool_run_raw_is_best_of_two_and_third_attempt_breaks_tie():
    doc = _doc("a", "b", "c")
    _set_results(doc, "pool-3", a={"attempts": [10, 4]}, b={"attempts": [9, 0, 6]}, c={"attempts": [5, 9, 4]})
    _finalize(doc, "pool-3")
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "pool-3", "raw") == {"a": 10, "b": 9, "c": 9}
    assert _field(out, "pool-3", "place") == {"a": 1, "b": 2, "c": 3}
    assert _field(out, "pool-3", "points") == {"a": 3, "b": 2, "c": 1}


def test_pool_run_tiebreak_swaps_tied_pair():
    doc = _doc("a", "b", "c")
    _set_results(doc, "pool-3", a={"attempts": [10, 4]}, b={"attempts": [9, 0, 3]}, c={"attempts": [5, 9, 8]})
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "pool-3", "place") == {"a": 1, "c": 2, "b": 3}


def test_pool_run_without_positive_attempt_has_no_place():
    doc = _doc("a", "b")
    _set_results(doc, "pool-3", a={"attempts": [0, 0]}, b={"attempts": [3, 1]})
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "pool-3", "raw") == {"a": None, "b": 3}
    assert _field(out, "pool-3", "place") == {"a": None, "b": 1}


def test_head_to_head_resolves_and_scores_with_extended_points():
    doc = _doc("a", "b", "c", "d")
    doc["matches"] = [
        _match(1, "a", "b", "a"),
        _match(2, "a", "c", "a"),
        _match(3, "b", "c", "b"),
        _match(4, "b", "d", "b"),
        _match(5, "c", "d", "c"),
        _match(6, "d", "a", "d"),
    ]
    _finalize(doc, "pool-1")
    out = recompute(doc, EXTENDED_POINTS)
    assert _field(out, "pool-1", "raw") == {"a": 2, "b": 2, "c": 1, "d": 1}
    assert _field(out, "pool-1", "place") == {"a": 1, "b": 2, "c": 3, "d": 4}
    assert _field(out, "pool-1", "points") == {"a": 3, "b": 2, "c": 1, "d": 0.5}


def test_incomplete_head_to_head_withholds_places_and_points():
    doc = _doc("a", "b", "c", "d")
    doc["matches"] = [_match(1, "a", "c", "a"), _match(1, "b", "d", "b")]
    _finalize(doc, "pool-1")
    outcome = recompute_document(doc, EXTENDED_POINTS)
    out = outcome.document
    assert _field(out, "pool-1", "raw") == {"a": 1, "b": 1, "c": 0, "d": 0}
    assert _field(out, "pool-1", "place") == {"a": None, "b": None, "c": None, "d": None}
    assert _field(out, "pool-1", "points") == {"a": None, "b": None, "c": None, "d": None}
    assert not outcome.is_resolved
    assert {g.status for g in outcome.tie_groups if g.game_id == "pool-1"} == {"pending"}


def _scheduled_doc(*ids):
    order = list(ids)
    return _doc(*ids, event_meta={
        "competitorOrder": order,
        "tables": [1],
        "schedule": generate_schedule(order, [1]),
    })


def test_byes_count_as_a_win_while_schedule_in_progress():
    doc = _scheduled_doc("a", "b", "c")
    _finalize(doc, "pool-1", "pool-2")
    out = recompute(doc, STANDARD_POINTS)
    for gid in ("pool-1", "pool-2"):
        assert _field(out, gid, "raw") == {"a": 1, "b": 1, "c": 1}
        assert _field(out, gid, "place") == {"a": None, "b": None, "c": None}
        assert _field(out, gid, "points") == {"a": None, "b": None, "c": None}


def test_one_recorded_match_in_progress_schedule():
    doc = _scheduled_doc("a", "b", "c")
    doc["matches"] = [_match(1, "b", "c", "b")]
    _finalize(doc, "pool-1")
    outcome = recompute_document(doc, STANDARD_POINTS)
    out = outcome.document
    assert _field(out, "pool-1", "raw") == {"a": 1, "b": 2, "c": 1}
    assert _field(out, "pool-1", "place") == {"a": None, "b": None, "c": None}
    pending = [g for g in outcome.tie_groups if g.game_id == "pool-1"]
    assert [g.detail for g in pending] == ["schedule_in_progress"]


def test_completed_schedule_releases_places():
    doc = _scheduled_doc("a", "b", "c")
    doc["matches"] = [
        _match(1, "b", "c", "b", winner9="c"),
        _match(2, "a", "c", "a"),
        _match(3, "a", "b", "a"),
    ]
    _finalize(doc, "pool-1", "pool-2")
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "pool-1", "raw") == {"a": 3, "b": 2, "c": 1}
    assert _field(out, "pool-1", "place") == {"a": 1, "b": 2, "c": 3}
    assert _field(out, "pool-1", "points") == {"a": 3, "b": 2, "c": 1}
    # 9-ball: a 3 (2 wins + bye), b 1 (bye), c 2 (1 win + bye)
    assert _field(out, "pool-2", "place") == {"a": 1, "c": 2, "b": 3}


def test_duplicate_darts_place_scores_nobody_sharing_it():
    doc = _doc("josh", "rob", "joe", "ann")
    _set_results(doc, "darts-1", josh={"place": 1}, rob={"place": 2}, joe={"place": 2}, ann={"place": 4})
    _finalize(doc, "darts-1")
    outcome = recompute_document(doc, EXTENDED_POINTS)
    out = outcome.document
    assert _field(out, "darts-1", "points") == {"josh": 3, "rob": None, "joe": None, "ann": 0.5}
    assert len(outcome.duplicate_places) == 1
    dup = outcome.duplicate_places[0]
    assert (dup.game_id, dup.place, dup.member_ids) == ("darts-1", 2, ("joe", "rob"))


def test_bowling_tie_uses_hand_entered_rolloff_places():
    doc = _doc("a", "b", "c")
    _set_results(doc, "bowling-3", a={"raw": 200}, b={"raw": 150, "place": 3}, c={"raw": 150, "place": 2})
    _finalize(doc, "bowling-3")
    outcome = recompute_document(doc, STANDARD_POINTS)
    out = outcome.document
    assert _field(out, "bowling-3", "place") == {"a": 1, "b": 3, "c": 2}
    assert _field(out, "bowling-3", "points") == {"a": 3, "b": 1, "c": 2}
    # The tie is still reported so an editor can show how it was settled.
    assert [g.member_ids for g in outcome.tie_groups if g.game_id == "bowling-3"] == [("b", "c")]


def test_bowling_tie_without_rolloff_has_no_places():
    doc = _doc("a", "b", "c")
    _set_results(doc, "bowling-3", a={"raw": 200}, b={"raw": 150}, c={"raw": 150})
    _finalize(doc, "bowling-3")
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "bowling-3", "place") == {"a": 1, "b": None, "c": None}
    assert _field(out, "bowling-3", "points") == {"a": 3, "b": None, "c": None}


def test_stale_place_on_untied_competitor_is_replaced():
    doc = _doc("a", "b")
    _set_results(doc, "bowling-1", a={"raw": 100, "place": 1}, b={"raw": 150, "place": 2})
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "bowling-1", "place") == {"a": 2, "b": 1}


def test_finalize_toggle_changes_only_points():
    doc = _doc("a", "b")
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150})
    _set_results(doc, "darts-2", a={"place": 2}, b={"place": 1})
    _finalize(doc, "darts-2")
    before = recompute(doc, STANDARD_POINTS)

    toggled = deepcopy(before)
    _finalize(toggled, "bowling-1")
    after = recompute(toggled, STANDARD_POINTS)

    assert _field(after, "bowling-1", "place") == _field(before, "bowling-1", "place")
    assert _field(before, "bowling-1", "points") == {"a": None, "b": None}
    assert _field(after, "bowling-1", "points") == {"a": 3, "b": 2}
    assert find_game(after, "darts-2") == find_game(before, "darts-2")
    assert after["totals"]["byCompetitor"]["a"]["overall"] == 5
    assert after["totals"]["byCompetitor"]["b"]["overall"] == 5


def test_totals_sum_games_per_discipline():
    doc = _doc("a", "b")
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150})
    _set_results(doc, "bowling-2", a={"raw": 100}, b={"raw": 150})
    _set_results(doc, "darts-3", a={"place": 1}, b={"place": 2})
    _finalize(doc, "bowling-1", "bowling-2", "darts-3")
    out = recompute(doc, STANDARD_POINTS)
    assert out["totals"]["byCompetitor"] == {
        "a": {"byDiscipline": {"bowling": 5, "pool": 0, "darts": 3}, "overall": 8},
        "b": {"byDiscipline": {"bowling": 5, "pool": 0, "darts": 2}, "overall": 7},
    }


def _legacy(doc):
    legacy = {k: v for k, v in deepcopy(doc).items() if k not in ("finalizedGames", "totals")}
    legacy["schemaVersion"] = 1
    legacy["participants"] = legacy.pop("competitors")
    legacy["poolMatches"] = legacy.pop("matches")
    legacy["subEvents"] = [
        {"subEventId": d["disciplineId"], "label": d["label"], "games": d["games"]}
        for d in legacy.pop("disciplines")
    ]
    return legacy


def test_legacy_document_without_flags_counts_every_game_finalized():
    doc = _doc("a", "b")
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150})
    out = recompute(_legacy(doc), STANDARD_POINTS)
    assert out["schemaVersion"] == 2
    assert out["finalizedGames"] == {gid: True for gid in ALL_GAME_IDS}
    assert [c["personId"] for c in out["competitors"]] == ["a", "b"]
    assert [d["disciplineId"] for d in out["disciplines"]] == ["bowling", "pool", "darts"]
    assert _field(out, "bowling-1", "points") == {"a": 3, "b": 2}
    assert out["totals"]["byCompetitor"]["a"]["byDiscipline"]["bowling"] == 3


def test_partial_flags_leave_missing_games_unfinalized():
    doc = _doc("a", "b")
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150})
    _set_results(doc, "bowling-2", a={"raw": 200}, b={"raw": 150})
    doc["finalizedGames"] = {"bowling-1": True}
    out = recompute(doc, STANDARD_POINTS)
    assert out["finalizedGames"]["bowling-2"] is False
    assert _field(out, "bowling-1", "points") == {"a": 3, "b": 2}
    assert _field(out, "bowling-2", "points") == {"a": None, "b": None}


def test_points_schedule_may_be_a_plain_mapping():
    doc = _doc("a", "b")
    _set_results(doc, "bowling-1", a={"raw": 200}, b={"raw": 150})
    _finalize(doc, "bowling-1")
    out = recompute(doc, {"first": 10, "second": 5, "third": 1})
    assert _field(out, "bowling-1", "points") == {"a": 10, "b": 5}


def test_invalid_points_schedule_is_rejected():
    with pytest.raises(ValueError, match="Invalid points schedule"):
        recompute(_doc("a"), {"first": 1, "second": 2, "third": 3})


def test_pool_run_missing_tiebreak_keeps_entered_places():
    doc = _doc("a", "b", "c")
    _set_results(
        doc,
        "pool-3",
        a={"attempts": [9, 0], "place": 2},
        b={"attempts": [0, 9], "place": 1},
        c={"attempts": [5, 0]},
    )
    _finalize(doc, "pool-3")
    outcome = recompute_document(doc, STANDARD_POINTS)
    out = outcome.document
    assert _field(out, "pool-3", "place") == {"a": 2, "b": 1, "c": 3}
    assert _field(out, "pool-3", "points") == {"a": 2, "b": 3, "c": 1}
    groups = [g for g in outcome.tie_groups if g.game_id == "pool-3"]
    assert [(g.member_ids, g.status, g.detail) for g in groups] == [
        (("a", "b"), "needs_manual", "tiebreak_attempt_missing")
    ]


def test_pool_run_equal_tiebreak_keeps_entered_places():
    doc = _doc("a", "b", "c")
    _set_results(
        doc,
        "pool-3",
        a={"attempts": [12, 3]},
        b={"attempts": [7, 0, 4], "place": 3},
        c={"attempts": [7, 1, 4], "place": 2},
    )
    _finalize(doc, "pool-3")
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "pool-3", "place") == {"a": 1, "b": 3, "c": 2}
    assert _field(out, "pool-3", "points") == {"a": 3, "b": 1, "c": 2}


def test_head_to_head_cycle_keeps_entered_places():
    doc = _doc("a", "b", "c")
    doc["matches"] = [_match(1, "a", "b", "a"), _match(2, "b", "c", "b"), _match(3, "c", "a", "c")]
    _set_results(doc, "pool-1", a={"place": 3}, b={"place": 1}, c={"place": 2})
    _finalize(doc, "pool-1")
    outcome = recompute_document(doc, STANDARD_POINTS)
    out = outcome.document
    assert _field(out, "pool-1", "raw") == {"a": 1, "b": 1, "c": 1}
    assert _field(out, "pool-1", "place") == {"a": 3, "b": 1, "c": 2}
    assert _field(out, "pool-1", "points") == {"a": 1, "b": 3, "c": 2}
    groups = [g for g in outcome.tie_groups if g.game_id == "pool-1"]
    assert [(g.status, g.detail) for g in groups] == [("needs_manual", "head_to_head_tie")]


def test_pending_head_to_head_ignores_entered_places():
    doc = _doc("a", "b", "c", "d")
    doc["matches"] = [_match(1, "a", "c", "a"), _match(1, "b", "d", "b")]
    _set_results(doc, "pool-1", a={"place": 1}, b={"place": 2})
    _finalize(doc, "pool-1")
    out = recompute(doc, STANDARD_POINTS)
    assert _field(out, "pool-1", "place") == {"a": None, "b": None, "c": None, "d": None}
    assert _field(out, "pool-1", "points") == {"a": None, "b": None, "c": None, "d": None}

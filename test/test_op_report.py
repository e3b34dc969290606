import json

import pytest

from gauss_compress.common.op_report import OpReport


def test_exact_closed_form_report_validates():
    OpReport(name="Copy", exact=True, closed_form=True).validate()


def test_exact_cannot_have_triggers():
    report = OpReport(name="X", exact=True, approximation_triggers=["greedy_merge"], solver_used="s")
    with pytest.raises(ValueError):
        report.validate()


def test_closed_form_cannot_list_solver():
    report = OpReport(name="X", exact=True, closed_form=True, solver_used="newton")
    with pytest.raises(ValueError):
        report.validate()


def test_iterative_must_name_solver():
    report = OpReport(name="X", exact=False, approximation_triggers=["greedy_merge"])
    with pytest.raises(ValueError):
        report.validate()


def test_point_count_cannot_grow():
    report = OpReport(
        name="X",
        exact=True,
        closed_form=True,
        metrics={"n_input": 3, "n_output": 4},
    )
    with pytest.raises(ValueError):
        report.validate()


def test_n_output_requires_n_input():
    report = OpReport(name="X", exact=True, closed_form=True, metrics={"n_output": 1})
    with pytest.raises(ValueError):
        report.validate()


def test_to_json_round_trip():
    report = OpReport(
        name="GaussianSummaryCompression",
        exact=False,
        approximation_triggers=["greedy_merge"],
        solver_used="greedy_knn_fixed_point",
        parameters={"knn": 2},
        metrics={"n_input": 3, "n_output": 2},
        notes="n",
    )
    payload = json.loads(report.to_json())
    assert payload["name"] == "GaussianSummaryCompression"
    assert payload["approximation_triggers"] == ["greedy_merge"]
    assert payload["metrics"] == {"n_input": 3, "n_output": 2}
    assert payload["parameters"] == {"knn": 2}

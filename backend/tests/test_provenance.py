"""Tests for provenance message generation (Prov-001 to Prov-006)."""

import pandas as pd

from services.analysis.override_reader import AgeOverride
from services.analysis.provenance import generate_provenance_messages

OVERRIDES = {("6", "636"): AgeOverride(subject="6", raw="636", unit="months", reason="entered in months")}


def _inputs():
    dm_raw = pd.DataFrame({
        "subject": ["1", "2", "6", "7"],
        "sex": ["Male", "F", "Male", "F"],
        "age_raw": ["35 years", "27", "636", "19 years"],
    })
    dm_clean = dm_raw.assign(
        sex=["M", "F", "M", "F"],
        age=[35.0, 27.0, 53.0, 19.0],
        age_rule=["years", "bare", "override", "years"],
    )
    obs = pd.DataFrame({"subject": ["1", "2", "6"], "time": [0.0, 0.0, 0.0], "conc": [0.0, 0.0, 0.0]})
    summary = pd.DataFrame({"subject": ["1", "2", "6"], "auc": [10.0, 0.0, 12.0], "n_points": [11, 1, 11]})
    return dm_raw, dm_clean, obs, summary


def _by_rule(messages):
    out = {}
    for m in messages:
        out.setdefault(m["rule_id"], []).append(m)
    return out


def test_all_conditional_rules_fire():
    dm_raw, dm_clean, obs, summary = _inputs()
    msgs = _by_rule(generate_provenance_messages(
        dm_raw, dm_clean, obs, summary, OVERRIDES, {"weight": ["1"]},
    ))
    assert set(msgs) == {"Prov-001", "Prov-002", "Prov-003", "Prov-004", "Prov-005", "Prov-006"}

    override_msg = msgs["Prov-001"][0]
    assert override_msg["icon"] == "warning"
    assert "Subject 6" in override_msg["message"]
    assert "53.0 years" in override_msg["message"]
    assert "entered in months" in override_msg["message"]

    assert "2 stated in years" in msgs["Prov-002"][0]["message"]
    assert "2 long-form" in msgs["Prov-003"][0]["message"]
    assert msgs["Prov-004"][0]["message"].endswith("2.")
    assert "'weight'" in msgs["Prov-005"][0]["message"]
    assert "7" in msgs["Prov-006"][0]["message"]


def test_clean_inputs_only_unit_summary():
    dm_raw = pd.DataFrame({"subject": ["1"], "sex": ["M"], "age_raw": ["30"]})
    dm_clean = dm_raw.assign(age=[30.0], age_rule=["bare"])
    obs = pd.DataFrame({"subject": ["1", "1"]})
    summary = pd.DataFrame({"subject": ["1"], "auc": [3.0], "n_points": [2]})
    msgs = generate_provenance_messages(dm_raw, dm_clean, obs, summary, {}, {})
    assert [m["rule_id"] for m in msgs] == ["Prov-002"]
    assert msgs[0]["message"] == "Ages of 1 subjects: 1 bare numbers taken as years."

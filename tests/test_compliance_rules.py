import pytest

from services.compliance_engine.app.rules import compliance_band, evaluate_compliance, normalize_course_name, round_half_up
from services.shared_models import CourseRecord


def test_matrix_splits_missing_into_failed_and_pending():
    history = [{"courseName": "A", "status": "approved"}, {"courseName": "B", "status": "failed"}]
    result = evaluate_compliance(history, ["A", "B", "C"])
    assert result.required_count == 3
    assert result.completed_count == 1
    assert result.missing_courses == ["B", "C"]
    assert result.failed_courses == ["B"]
    assert result.pending_courses == ["C"]
    assert result.compliance_percentage == 33.33


def test_no_required_courses_is_full_compliance():
    history = [{"courseName": "A", "status": "failed"}]
    for hist in ([], history):
        result = evaluate_compliance(hist, [])
        assert result.compliance_percentage == 100.0
        assert result.required_count == 0
        assert result.completed_count == 0
        assert result.missing_courses == []
        assert result.failed_courses == []
        assert result.pending_courses == []


def test_empty_history_leaves_everything_pending():
    result = evaluate_compliance([], ["PRIMEROS AUXILIOS", "5S"])
    assert result.completed_count == 0
    assert result.pending_courses == ["PRIMEROS AUXILIOS", "5S"]
    assert result.compliance_percentage == 0.0


@pytest.mark.parametrize("spelling", ["Seguridad e Higiene", "SEGURIDAD E HIGIENE ", "SEGURIDAD É HIGIENE", "  seguridad   e higiene"])
def test_course_name_variants_satisfy_requirement(spelling):
    history = [{"courseName": spelling, "date": "10/02/2024", "score": 95}]
    result = evaluate_compliance(history, ["SEGURIDAD E HIGIENE"])
    assert result.completed_count == 1
    assert result.missing_courses == []
    assert result.compliance_percentage == 100.0


def test_accented_requirement_matches_plain_history():
    history = [{"courseName": "CAPACITACION INICIAL", "score": 80}]
    result = evaluate_compliance(history, ["Capacitación Inicial"])
    assert result.completed_count == 1


def test_failed_attempt_with_other_spelling_counts_as_failed_not_pending():
    history = [{"courseName": "Primeros Auxílios", "score": 40}]
    result = evaluate_compliance(history, ["PRIMEROS AUXILIOS"])
    assert result.failed_courses == ["PRIMEROS AUXILIOS"]
    assert result.pending_courses == []


def test_retake_after_failure_counts_as_completed():
    history = [
        {"courseName": "5S", "date": "01/01/2023", "score": 50},
        {"courseName": "5S", "date": "01/03/2023", "score": 90},
    ]
    result = evaluate_compliance(history, ["5S"])
    assert result.completed_count == 1
    assert result.failed_courses == []


def test_duplicate_requirements_count_once():
    result = evaluate_compliance([{"courseName": "A", "status": "approved"}], ["A", "a ", "B"])
    assert result.required_count == 2
    assert result.missing_courses == ["B"]
    assert result.compliance_percentage == 50.0


def test_missing_courses_keep_input_order_and_spelling():
    result = evaluate_compliance([], ["Montacargas", "Calidad", "5S"])
    assert result.missing_courses == ["Montacargas", "Calidad", "5S"]


@pytest.mark.parametrize(
    "history,required",
    [
        ([], ["A"]),
        ([{"courseName": "A", "score": 100}], ["A", "B"]),
        ([{"courseName": "A", "score": 10}, {"courseName": "B", "score": 70}], ["A", "B", "C", "D"]),
        ([{"courseName": "X", "score": 90}], ["A", "B"]),
    ],
)
def test_counts_always_add_up(history, required):
    result = evaluate_compliance(history, required)
    assert result.completed_count + len(result.missing_courses) == result.required_count
    assert len(result.failed_courses) + len(result.pending_courses) == len(result.missing_courses)


def test_evaluation_is_deterministic():
    history = [
        {"courseName": "B", "score": 60},
        {"courseName": "A", "score": 90},
        {"courseName": "C", "score": 75},
    ]
    required = ["C", "A", "B", "D", "E"]
    first = evaluate_compliance(history, required)
    second = evaluate_compliance(list(history), list(required))
    assert first == second
    assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)


def test_two_thirds_rounds_to_two_decimals():
    history = [{"courseName": "A", "score": 90}, {"courseName": "B", "score": 90}]
    assert evaluate_compliance(history, ["A", "B", "C"]).compliance_percentage == 66.67


def test_exact_ties_round_up():
    required = [f"C{i}" for i in range(32)]
    assert evaluate_compliance([{"courseName": "C0", "status": "approved"}], required).compliance_percentage == 3.13
    history = [{"courseName": f"C{i}", "status": "approved"} for i in range(3)]
    assert evaluate_compliance(history, required).compliance_percentage == 9.38


def test_round_half_up():
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(16.665, 1) == 16.7
    # 2.675 is stored just below the tie
    assert round_half_up(2.675, 2) == 2.67
    assert round_half_up(100.0, 2) == 100.0


def test_course_record_ingestion_derives_status_and_clamps_score():
    assert CourseRecord.model_validate({"courseName": " 5s ", "score": "85"}).status == "approved"
    assert CourseRecord.model_validate({"courseName": "5S", "score": 69.9}).status == "failed"
    assert CourseRecord.model_validate({"courseName": "5S", "score": 70}).status == "approved"
    garbage = CourseRecord.model_validate({"courseName": "5S", "score": "n/a"})
    assert garbage.score == 0.0
    assert garbage.status == "failed"
    assert CourseRecord.model_validate({"courseName": "5S", "score": 150}).score == 100.0
    assert CourseRecord.model_validate({"courseName": "5S", "score": -3}).score == 0.0
    assert CourseRecord.model_validate({"courseName": " primeros  auxilios "}).course_name == "PRIMEROS AUXILIOS"


def test_explicit_status_is_not_rederived():
    record = CourseRecord.model_validate({"courseName": "5S", "score": 95, "status": "failed"})
    assert record.status == "failed"
    assert evaluate_compliance([record], ["5S"]).failed_courses == ["5S"]


def test_normalize_course_name():
    assert normalize_course_name("  Seguridad  É higiene ") == "SEGURIDAD E HIGIENE"
    assert normalize_course_name("Inducción") == "INDUCCION"
    assert normalize_course_name(None) == ""


def test_compliance_band():
    assert compliance_band(69.99) == "critical"
    assert compliance_band(70) == "regular"
    assert compliance_band(89.9) == "regular"
    assert compliance_band(90) == "excellent"

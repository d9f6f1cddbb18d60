from datetime import date

from services.eligibility_engine.app.rules import exam_eligibility

FIRST_FAIL = {"date": "01/01/2024", "score": 50, "passed": False}
SECOND_FAIL = {"date": "05/02/2024", "score": 55, "passed": False}


def test_no_attempts_is_available():
    result = exam_eligibility([], 12, "01/01/2023", date(2024, 1, 15))
    assert result.status == "available"
    assert result.can_take_exam is True
    assert result.next_date is None


def test_passed_exam_cannot_be_retaken():
    attempts = [FIRST_FAIL, {"date": "05/02/2024", "score": 88, "passed": True}]
    result = exam_eligibility(attempts, 12, "01/01/2023", date(2024, 3, 1))
    assert result.status == "passed"
    assert result.can_take_exam is False
    assert result.reason == "Examen aprobado"


def test_one_failure_waits_a_month():
    result = exam_eligibility([FIRST_FAIL], 12, "01/01/2023", date(2024, 1, 15))
    assert result.status == "waiting"
    assert result.can_take_exam is False
    assert result.next_date == date(2024, 2, 1)


def test_one_failure_becomes_available_after_cooldown():
    result = exam_eligibility([FIRST_FAIL], 12, "01/01/2023", date(2024, 2, 2))
    assert result.status == "available"
    assert result.can_take_exam is True
    assert result.next_date is None


def test_cooldown_ends_on_the_next_date_itself():
    assert exam_eligibility([FIRST_FAIL], 12, None, date(2024, 2, 1)).status == "available"


def test_cooldown_from_month_end_clamps_day():
    attempts = [{"date": "31/01/2024", "score": 40, "passed": False}]
    result = exam_eligibility(attempts, 6, None, date(2024, 2, 20))
    assert result.next_date == date(2024, 2, 29)


def test_two_failures_block_until_temporality():
    attempts = [{"date": "01/02/2023", "score": 40, "passed": False}, {"date": "01/04/2023", "score": 45, "passed": False}]
    result = exam_eligibility(attempts, 12, "01/01/2023", date(2023, 6, 1))
    assert result.status == "blocked"
    assert result.can_take_exam is False
    assert result.next_date == date(2024, 1, 1)
    assert result.reason == "Debe completar temporalidad (12 meses)"


def test_two_failures_available_once_temporality_is_complete():
    result = exam_eligibility([FIRST_FAIL, SECOND_FAIL], 12, "01/01/2023", date(2024, 1, 1))
    assert result.status == "available"
    assert result.reason == "Temporalidad completada"


def test_two_failures_without_start_date_stay_blocked():
    for start in (None, "", "31/02/2023", "not a date"):
        result = exam_eligibility([FIRST_FAIL, SECOND_FAIL], 12, start, date(2030, 1, 1))
        assert result.status == "blocked"
        assert result.next_date is None
        assert result.reason == "Fecha de inicio de puesto no registrada"


def test_failure_after_a_pass_uses_failure_count():
    attempts = [{"date": "01/01/2024", "score": 90, "passed": True}, {"date": "10/01/2024", "score": 30, "passed": False}]
    result = exam_eligibility(attempts, 12, "01/01/2023", date(2024, 1, 20))
    assert result.status == "waiting"
    assert result.next_date == date(2024, 2, 10)


def test_iso_dates_are_accepted():
    attempts = [{"date": "2024-01-01", "score": 50, "passed": False}]
    assert exam_eligibility(attempts, 12, "2023-01-01", date(2024, 1, 15)).next_date == date(2024, 2, 1)


def test_missing_attempt_date_counts_from_today():
    attempts = [{"score": 50, "passed": False}]
    result = exam_eligibility(attempts, 12, None, date(2024, 5, 10))
    assert result.status == "waiting"
    assert result.next_date == date(2024, 6, 10)


def test_cooldown_past_the_last_representable_date_saturates():
    attempts = [{"date": "15/12/9999", "score": 40, "passed": False}]
    result = exam_eligibility(attempts, 12, None, date(2024, 1, 1))
    assert result.status == "waiting"
    assert result.next_date == date.max


def test_huge_temporality_stays_blocked():
    result = exam_eligibility([FIRST_FAIL, SECOND_FAIL], 10**6, "01/01/2023", date(2024, 1, 1))
    assert result.status == "blocked"
    assert result.next_date == date.max
    assert result.reason == "Debe completar temporalidad (1000000 meses)"

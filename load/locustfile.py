from locust import HttpUser, between, task

HISTORY = [
    {"courseName": "SEGURIDAD E HIGIENE", "date": "15/03/2024", "score": 92},
    {"courseName": "PRIMEROS AUXILIOS", "date": "02/05/2024", "score": 55},
]


class ComplianceEngineUser(HttpUser):
    """Run with --host http://localhost:8005"""

    wait_time = between(0.5, 2.0)

    @task(3)
    def evaluate_matrix(self):
        self.client.post(
            "/evaluate",
            json={"history": HISTORY, "requiredCourses": ["SEGURIDAD E HIGIENE", "PRIMEROS AUXILIOS", "5S"]},
        )

    @task
    def alerts(self):
        self.client.post("/alerts", json={"history": HISTORY, "validityYears": {"SEGURIDAD E HIGIENE": 2}})


class EligibilityEngineUser(HttpUser):
    """Run with --host http://localhost:8004"""

    wait_time = between(0.5, 2.0)

    @task(3)
    def evaluate_promotion(self):
        self.client.post(
            "/evaluate",
            json={
                "employee": {
                    "employeeId": "1001",
                    "history": HISTORY,
                    "matrix": {"requiredCount": 3, "completedCount": 1, "compliancePercentage": 33.33},
                    "promotionData": {
                        "performanceScore": 85,
                        "positionStartDate": "01/01/2023",
                        "examAttempts": [{"date": "10/01/2024", "score": 60, "passed": False}],
                    },
                },
                "rule": {"temporalityMonths": 12, "examMinScore": 70, "matrixMinCoverage": 90, "performanceMinScore": 80},
            },
        )

    @task
    def exam_schedule(self):
        self.client.post(
            "/exam-eligibility",
            json={"examAttempts": [{"date": "10/01/2024", "score": 60, "passed": False}], "temporalityMonths": 12},
        )

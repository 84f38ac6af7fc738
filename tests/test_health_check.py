from storefront.notifications.models import CommunicationEvent


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_health_check_reports_notification_backlog(self, client):
        CommunicationEvent.objects.create(
            event_type="order_confirmation",
            recipient_email="ada@example.com",
            template_key="order_confirmation",
            dedupe_key="health-1",
        )
        data = client.get("/health").json()
        assert data["services"]["notification_queue"] == {"queued": 1, "failed": 0}

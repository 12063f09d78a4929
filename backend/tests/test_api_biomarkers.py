from datetime import datetime


def _seed_hba1c(health_repository, make_report):
    health_repository.add_blood_report(
        make_report([("HbA1c", "7.8", "%", "4.0-5.6", True)], result_date=datetime(2024, 1, 1))
    )
    health_repository.add_blood_report(
        make_report([("HbA1c", "9.0", "%", "4.0-5.6", True)], result_date=datetime(2024, 2, 1))
    )


def test_list_biomarkers_empty(client):
    response = client.get("/api/v1/biomarkers/patient/1")

    assert response.status_code == 200
    assert response.json() == []


def test_list_biomarkers(client, health_repository, make_report):
    _seed_hba1c(health_repository, make_report)

    response = client.get("/api/v1/biomarkers/patient/1")

    assert response.status_code == 200
    [biomarker] = response.json()
    assert biomarker["test_name"] == "HbA1c"
    assert biomarker["current_value"] == "9.0"
    assert biomarker["trend_direction"] == "up"
    assert biomarker["trend_text"] == "1.2"
    assert biomarker["trend_percentage"] == "15%"
    assert biomarker["health_status"] == "warning"
    assert biomarker["needs_attention"] is True
    assert len(biomarker["historical_values"]) == 2


def test_list_biomarkers_only_for_requested_patient(client, health_repository, make_report):
    _seed_hba1c(health_repository, make_report)

    response = client.get("/api/v1/biomarkers/patient/2")

    assert response.json() == []


def test_list_biomarkers_filters_by_category(client, health_repository, make_report):
    _seed_hba1c(health_repository, make_report)
    health_repository.add_blood_report(
        make_report([("Glucose", "85", "mg/dL", "70-100", False)], category="Chemistry")
    )

    response = client.get("/api/v1/biomarkers/patient/1", params={"category": "Chemistry"})

    assert [b["test_name"] for b in response.json()] == ["Glucose"]


def test_list_biomarkers_filters_by_date_range(client, health_repository, make_report):
    _seed_hba1c(health_repository, make_report)

    response = client.get(
        "/api/v1/biomarkers/patient/1",
        params={"start": "2024-01-15T00:00:00", "end": "2024-03-01T00:00:00"},
    )

    [biomarker] = response.json()
    assert biomarker["test_count"] == 1
    assert biomarker["trend_direction"] == "stable"


def test_list_biomarkers_rejects_inverted_range(client):
    response = client.get(
        "/api/v1/biomarkers/patient/1",
        params={"start": "2024-03-01T00:00:00", "end": "2024-01-01T00:00:00"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "http_error"


def test_biomarker_trends(client, health_repository, make_report):
    _seed_hba1c(health_repository, make_report)

    response = client.get("/api/v1/biomarkers/patient/1/trends/hba1c")

    assert response.status_code == 200
    data = response.json()
    assert data["current_value"] == 9.0
    assert data["comparison_percentage"] == "15%"
    assert data["trend_direction"] == "up"
    assert data["normal_range"] == "4.0-5.6"


def test_biomarker_trends_missing(client):
    response = client.get("/api/v1/biomarkers/patient/1/trends/LDL")

    assert response.status_code == 404
    assert response.json()["error"]["status_code"] == 404

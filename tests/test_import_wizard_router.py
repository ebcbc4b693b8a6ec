"""
tests/test_import_wizard_router.py

HTTP tests for the import wizard and import job routers.

The contacts backend, job service and database session are replaced through
FastAPI dependency overrides, so no network or PostgreSQL is needed.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from datetime import datetime
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import import_jobs_router, import_wizard_router
from app.config import CSVUploadSettings, ImportSettings, get_csv_upload_settings, get_import_settings
from app.connectors.base import BackendRequestError
from app.connectors.contact_api_client import get_contact_import_api_client
from app.domain.contact_import import ContactRecord, ExistingGroup
from app.repositories.wizard_session_repository import WizardSessionRepository, get_wizard_session_repository
from app.services.import_job_service import get_import_job_service
from app.services.wizard_state import ImportWizard, get_import_wizard
from db.session import get_db

GENERAL_CSV = (
    b"Name,Phone,Email,Appointment Date,Appointment Time,Tags\n"
    b"Ann Lee,+15551234567,ann@example.com,2099-03-15,10:00,VIP\n"
    b'Bob Roe,+15557654321,,2099-03-16,2:30 PM,"vip; Gold"\n'
)


class FakeBackend:
    def __init__(self, groups: Sequence[ExistingGroup] = (), fail: bool = False) -> None:
        self.groups = list(groups)
        self.fail = fail
        self.list_calls = 0

    def list_groups(self) -> list[ExistingGroup]:
        self.list_calls += 1
        if self.fail:
            raise BackendRequestError("contacts_api: request failed after retries.")
        return self.groups


class FakeJobService:
    def __init__(self, fail: bool = False) -> None:
        self.jobs: dict[uuid.UUID, SimpleNamespace] = {}
        self.submitted: list[ContactRecord] = []
        self.fail = fail

    def start_import(self, *, db: Any, executor: Any, session_id: str, business_type: str, file_name: str | None,
                     records: Sequence[ContactRecord]) -> SimpleNamespace:
        if self.fail:
            raise RuntimeError("import_jobs: could not persist job")
        self.submitted = list(records)
        now = datetime(2030, 1, 1, 9, 0)
        job = SimpleNamespace(
            id=uuid.uuid4(),
            session_id=session_id,
            business_type=business_type,
            file_name=file_name,
            status="pending",
            phase=None,
            total_contacts=len(records),
            created_at=now,
            updated_at=now,
            started_at=None,
            completed_at=None,
            result_payload=None,
            error_message=None,
        )
        self.jobs[job.id] = job
        return job

    def get_job_status(self, *, db: Any, job_id: uuid.UUID) -> SimpleNamespace | None:
        return self.jobs.get(job_id)


def _no_db() -> Iterator[None]:
    yield None


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend(groups=[ExistingGroup(id="grp-1", name="VIP customers", contact_count=12)])


@pytest.fixture()
def job_service() -> FakeJobService:
    return FakeJobService()


@pytest.fixture()
def client(backend: FakeBackend, job_service: FakeJobService) -> TestClient:
    app = FastAPI()
    app.include_router(import_wizard_router)
    app.include_router(import_jobs_router)

    repository = WizardSessionRepository()
    wizard = ImportWizard()
    app.dependency_overrides[get_wizard_session_repository] = lambda: repository
    app.dependency_overrides[get_import_wizard] = lambda: wizard
    app.dependency_overrides[get_import_settings] = lambda: ImportSettings()
    app.dependency_overrides[get_csv_upload_settings] = lambda: CSVUploadSettings()
    app.dependency_overrides[get_contact_import_api_client] = lambda: backend
    app.dependency_overrides[get_import_job_service] = lambda: job_service
    app.dependency_overrides[get_db] = _no_db
    return TestClient(app)


def _upload(client: TestClient, business_type: str = "general", data: bytes = GENERAL_CSV) -> Any:
    return client.post(
        "/imports/sessions",
        files={"file": ("contacts.csv", data, "text/csv")},
        data={"business_type": business_type},
    )


class TestWizardEndpoints:
    def test_full_import_flow(self, client: TestClient, backend: FakeBackend, job_service: FakeJobService) -> None:
        created = _upload(client)
        assert created.status_code == 201
        body = created.json()
        session_id = body["session_id"]
        assert body["step"] == "mapping"
        assert body["row_count"] == 2
        assert body["required_fields_count"] == 4
        assert body["selected_group_column"] == "Tags"
        assert [item["contact_field"] for item in body["field_mappings"]][:2] == ["name", "phone"]

        validated = client.post(f"/imports/sessions/{session_id}/advance")
        assert validated.status_code == 200
        assert validated.json()["step"] == "validation"
        assert validated.json()["can_proceed"] is True

        groups = client.post(f"/imports/sessions/{session_id}/advance")
        assert groups.json()["step"] == "groups"

        assigned = client.put(
            f"/imports/sessions/{session_id}/groups",
            json={"normalized_value": "vip", "action": "assign", "target_group_id": "grp-1"},
        )
        assert assigned.status_code == 200
        assert assigned.json()["group_values"][0]["target_group_id"] == "grp-1"

        preview_step = client.post(f"/imports/sessions/{session_id}/advance")
        assert preview_step.json()["step"] == "preview"
        assert backend.list_calls == 1

        preview = client.get(f"/imports/sessions/{session_id}/preview")
        assert preview.status_code == 200
        assert preview.json()["contacts_to_create"] == 2
        assert preview.json()["groups_to_create"] == ["Gold"]
        assert preview.json()["appointments_to_schedule"] == 2
        assert preview.json()["sample_contacts"][1]["group_ids"] == ["grp-1"]

        assert client.post(f"/imports/sessions/{session_id}/advance").status_code == 409

        started = client.post(f"/imports/sessions/{session_id}/import")
        assert started.status_code == 202
        assert started.json()["total_contacts"] == 2
        assert started.json()["status"] == "pending"
        assert [record.name for record in job_service.submitted] == ["Ann Lee", "Bob Roe"]

        status = client.get(f"/imports/jobs/{started.json()['job_id']}")
        assert status.status_code == 200
        assert status.json()["session_id"] == session_id

        assert client.get(f"/imports/sessions/{session_id}").json()["step"] == "importing"
        assert client.post(f"/imports/sessions/{session_id}/import").status_code == 409

    def test_unknown_session_is_404(self, client: TestClient) -> None:
        response = client.get("/imports/sessions/does-not-exist")

        assert response.status_code == 404
        assert "does-not-exist" in response.json()["detail"]

    def test_unknown_business_type_is_400(self, client: TestClient) -> None:
        assert _upload(client, business_type="bakery").status_code == 400

    def test_non_csv_upload_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/imports/sessions",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Please select a valid CSV file."

    def test_unmapping_required_field_blocks_validation(self, client: TestClient) -> None:
        session_id = _upload(client).json()["session_id"]

        updated = client.put(
            f"/imports/sessions/{session_id}/mappings",
            json={"csv_column": "Phone", "contact_field": ""},
        )
        assert updated.json()["required_fields_count"] == 3

        assert client.post(f"/imports/sessions/{session_id}/validate").status_code == 409

    def test_unknown_contact_field_is_400(self, client: TestClient) -> None:
        session_id = _upload(client).json()["session_id"]

        response = client.put(
            f"/imports/sessions/{session_id}/mappings",
            json={"csv_column": "Phone", "contact_field": "shoe_size"},
        )

        assert response.status_code == 400

    def test_back_and_reset(self, client: TestClient) -> None:
        session_id = _upload(client, business_type="salon").json()["session_id"]
        client.post(f"/imports/sessions/{session_id}/advance")

        assert client.post(f"/imports/sessions/{session_id}/back").json()["step"] == "mapping"
        reset = client.post(f"/imports/sessions/{session_id}/reset").json()
        assert reset["step"] == "upload"
        assert reset["business_type"] == "salon"
        assert reset["file_name"] is None
        assert client.post(f"/imports/sessions/{session_id}/back").status_code == 409

    def test_group_column_can_be_cleared(self, client: TestClient) -> None:
        session_id = _upload(client).json()["session_id"]

        response = client.put(f"/imports/sessions/{session_id}/group-column", json={"column": None})

        assert response.status_code == 200
        assert response.json()["selected_group_column"] is None
        assert response.json()["group_values"] == []

    def test_business_type_change(self, client: TestClient) -> None:
        session_id = _upload(client).json()["session_id"]

        response = client.put(f"/imports/sessions/{session_id}/business-type", json={"business_type": "medical"})

        assert response.status_code == 200
        assert response.json()["business_type"] == "medical"

    def test_duplicate_headers_are_400(self, client: TestClient) -> None:
        response = _upload(client, data=b"Name,Phone,Phone\nAnn Lee,+15551234567,+15557654321\n")

        assert response.status_code == 400
        assert "'Phone'" in response.json()["detail"]


def _advance_to_preview(client: TestClient) -> str:
    session_id = _upload(client).json()["session_id"]
    client.post(f"/imports/sessions/{session_id}/advance")
    client.post(f"/imports/sessions/{session_id}/advance")
    client.put(
        f"/imports/sessions/{session_id}/groups",
        json={"normalized_value": "vip", "action": "assign", "target_group_id": "grp-1"},
    )
    assert client.post(f"/imports/sessions/{session_id}/advance").json()["step"] == "preview"
    return session_id


class TestStartImport:
    def test_queue_failure_returns_session_to_preview(self, client: TestClient, job_service: FakeJobService) -> None:
        session_id = _advance_to_preview(client)
        job_service.fail = True

        failed = client.post(f"/imports/sessions/{session_id}/import")

        assert failed.status_code == 503
        assert failed.json()["detail"] == "Unable to queue the contact import. Please try again."
        session = client.get(f"/imports/sessions/{session_id}").json()
        assert session["step"] == "preview"
        assert session["file_name"] == "contacts.csv"
        assert session["row_count"] == 2

        job_service.fail = False
        retried = client.post(f"/imports/sessions/{session_id}/import")
        assert retried.status_code == 202
        assert retried.json()["total_contacts"] == 2

    def test_queued_import_releases_uploaded_file(self, client: TestClient) -> None:
        session_id = _advance_to_preview(client)

        assert client.post(f"/imports/sessions/{session_id}/import").status_code == 202

        session = client.get(f"/imports/sessions/{session_id}").json()
        assert session["step"] == "importing"
        assert session["business_type"] == "general"
        assert session["file_name"] is None
        assert session["row_count"] == 0
        assert session["field_mappings"] == []


def test_sessions_beyond_capacity_are_evicted() -> None:
    app = FastAPI()
    app.include_router(import_wizard_router)
    repository = WizardSessionRepository(max_sessions=2)
    app.dependency_overrides[get_wizard_session_repository] = lambda: repository
    wizard = ImportWizard()
    app.dependency_overrides[get_import_wizard] = lambda: wizard
    app.dependency_overrides[get_import_settings] = lambda: ImportSettings()
    app.dependency_overrides[get_csv_upload_settings] = lambda: CSVUploadSettings()
    client = TestClient(app)

    first, second, third = (_upload(client).json()["session_id"] for _ in range(3))

    assert client.get(f"/imports/sessions/{first}").status_code == 404
    assert client.get(f"/imports/sessions/{second}").status_code == 200
    assert client.get(f"/imports/sessions/{third}").status_code == 200


class TestSupportEndpoints:
    def test_list_groups(self, client: TestClient) -> None:
        response = client.get("/imports/groups")

        assert response.status_code == 200
        assert response.json() == [{"id": "grp-1", "name": "VIP customers", "contact_count": 12}]

    def test_backend_failure_is_502(self, client: TestClient, backend: FakeBackend) -> None:
        backend.fail = True

        assert client.get("/imports/groups").status_code == 502

    def test_template_download(self, client: TestClient) -> None:
        response = client.get("/imports/templates/salon")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="salon_contacts_template.csv"' in response.headers["content-disposition"]
        assert response.text.startswith("Client Name,Phone")

    def test_unknown_template_is_400(self, client: TestClient) -> None:
        assert client.get("/imports/templates/bakery").status_code == 400

    def test_unknown_job_is_404(self, client: TestClient) -> None:
        assert client.get(f"/imports/jobs/{uuid.uuid4()}").status_code == 404

import importlib.util
import warnings
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from main import create_app
from src.core.database import get_db
from src.core.deps import get_current_user
from src.core.exceptions import ConcurrencyTimeout
from src.core.security import create_access_token
from src.modules.ledger.service import SettlementLedger
from src.modules.users.models import User
from src.shared.enums import UserRole
from tests.factories import seed_admin, seed_patient, seed_professional


@pytest_asyncio.fixture
async def api(db_session):
    app = create_app()
    admin = await seed_admin(db_session)
    state = {"user": admin}

    async def override_db():
        yield db_session

    async def override_user():
        return state["user"]

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_user] = override_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client, state


def _booking(patient, professional, start="10:00", end="11:00", cost="1000.00"):
    return {
        "patient_id": patient.patient_id,
        "professional_id": professional.user_id,
        "date": "2026-03-02",
        "start_time": start,
        "end_time": end,
        "session_cost": cost,
    }


@pytest.mark.asyncio
async def test_health(api):
    client, _ = api
    resp = await client.get("/health")
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_appointment_lifecycle_and_settlement_over_http(api, db_session):
    client, _ = api
    professional = await seed_professional(db_session, commission_rate=20)
    patient = await seed_patient(db_session)

    created = await client.post("/api/v1/appointments", json=_booking(patient, professional))
    assert created.status_code == 201
    body = created.json()
    appointment_id = body["id"]
    assert body["status"] == "scheduled"
    assert body["professional_name"] == "Dr. Rivas"

    conflict = await client.post(
        "/api/v1/appointments", json=_booking(patient, professional, "10:30", "11:30")
    )
    assert conflict.status_code == 409
    assert conflict.json()["success"] is False
    assert conflict.json()["message"] == "The selected time slot is not available"

    completed = await client.put(
        f"/api/v1/appointments/{appointment_id}",
        json={"status": "completed", "attended": True, "payment_amount": "400"},
    )
    completed.raise_for_status()
    assert completed.json()["remaining_balance"] == "600.00"
    assert completed.json()["completed_at"] is not None

    professionals = await client.get("/api/v1/admin/professionals")
    professionals.raise_for_status()
    assert professionals.json()[0]["owed_amount"] == "200.00"

    settle = await client.post(
        f"/api/v1/ledger/professionals/{professional.user_id}/settlements",
        json={"amount": "50"},
    )
    settle.raise_for_status()
    payload = settle.json()
    assert payload["success"] is True
    assert payload["data"] == {"owed_amount": "150.00", "paid_in_full": False}

    history = await client.get(
        "/api/v1/ledger/settlements", params={"professional_id": professional.user_id}
    )
    history.raise_for_status()
    assert [row["amount"] for row in history.json()] == ["50.00"]

    deleted = await client.delete(f"/api/v1/appointments/{appointment_id}")
    deleted.raise_for_status()
    assert deleted.json()["active"] is False
    listed = await client.get("/api/v1/appointments")
    assert listed.json() == []


@pytest.mark.asyncio
async def test_invalid_settlement_amount_reports_reason(api, db_session):
    client, _ = api
    professional = await seed_professional(db_session)

    resp = await client.post(
        f"/api/v1/ledger/professionals/{professional.user_id}/settlements",
        json={"amount": "0"},
    )
    assert resp.status_code == 422
    assert resp.json() == {
        "success": False,
        "message": "Settlement amount must be a positive number",
        "retryable": False,
    }


@pytest.mark.asyncio
async def test_inverted_times_are_rejected(api, db_session):
    client, _ = api
    professional = await seed_professional(db_session)
    patient = await seed_patient(db_session)

    resp = await client.post(
        "/api/v1/appointments", json=_booking(patient, professional, "11:00", "10:00")
    )
    assert resp.status_code == 422
    assert resp.json()["message"] == "end_time must be later than start_time"


@pytest.mark.asyncio
async def test_commission_patch_recomputes_owed(api, db_session):
    client, _ = api
    professional = await seed_professional(db_session, commission_rate=20)
    patient = await seed_patient(db_session)
    created = await client.post("/api/v1/appointments", json=_booking(patient, professional))
    await client.put(
        f"/api/v1/appointments/{created.json()['id']}",
        json={"status": "completed", "attended": "true"},
    )

    resp = await client.patch(
        f"/api/v1/admin/professionals/{professional.user_id}/commission",
        json={"commission_rate": 150},
    )
    resp.raise_for_status()
    assert resp.json()["commission_rate"] == 100
    assert resp.json()["owed_amount"] == "1000.00"


@pytest.mark.asyncio
async def test_slots_endpoint_lists_free_hours(api, db_session):
    client, _ = api
    professional = await seed_professional(db_session)
    patient = await seed_patient(db_session)
    await client.post("/api/v1/appointments", json=_booking(patient, professional, "09:00", "11:00"))

    resp = await client.get(
        f"/api/v1/schedule/professionals/{professional.user_id}/slots",
        params={"date": "2026-03-02"},
    )
    resp.raise_for_status()
    assert resp.json()["slots"] == ["11:00", "12:00", "13:00", "14:00", "15:00", "16:00", "17:00"]


@pytest.mark.asyncio
async def test_role_gates(api, db_session):
    client, state = api
    owner = await seed_professional(db_session, name="Dr. Owner")
    other = await seed_professional(db_session, name="Dr. Other")
    patient = await seed_patient(db_session)
    created = await client.post("/api/v1/appointments", json=_booking(patient, owner))
    appointment_id = created.json()["id"]

    state["user"] = other
    denied = await client.put(f"/api/v1/appointments/{appointment_id}", json={"notes": "mine now"})
    assert denied.status_code == 403
    assert denied.json()["message"] == "Access denied"

    settle = await client.post(
        f"/api/v1/ledger/professionals/{other.user_id}/settlements", json={"amount": "10"}
    )
    assert settle.status_code == 403

    state["user"] = owner
    allowed = await client.put(f"/api/v1/appointments/{appointment_id}", json={"notes": "checked in"})
    allowed.raise_for_status()
    assert allowed.json()["notes"] == "checked in"

    me = await client.get("/api/v1/users/me")
    me.raise_for_status()
    assert me.json()["role"] == UserRole.PROFESSIONAL.value
    assert "owed_amount" in me.json()


@pytest_asyncio.fixture
async def bare_client(db_session):
    app = create_app()

    async def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.mark.asyncio
async def test_missing_or_bad_token_is_rejected(bare_client):
    assert (await bare_client.get("/api/v1/appointments")).status_code == 401
    resp = await bare_client.get(
        "/api/v1/appointments", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_bearer_token_resolves_current_user(bare_client, db_session):
    professional = await seed_professional(db_session, commission_rate=30)
    token = create_access_token(professional.user_id, professional.role)

    resp = await bare_client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    resp.raise_for_status()
    assert resp.json()["id"] == professional.user_id
    assert resp.json()["commission_rate"] == 30

    professional.is_active = False
    await db_session.commit()
    resp = await bare_client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_user_model_clamps_commission_rate():
    user = User(name="x", email="x@clinic.test", role=UserRole.PROFESSIONAL, commission_rate=-5)
    assert user.commission_rate == 0


@pytest.mark.asyncio
async def test_lock_timeout_is_reported_as_retryable(api, db_session, monkeypatch):
    client, _ = api
    professional = await seed_professional(db_session)

    async def busy(self, professional_id, amount):
        raise ConcurrencyTimeout("Professional balance is busy, please retry")

    monkeypatch.setattr(SettlementLedger, "settle", busy)
    resp = await client.post(
        f"/api/v1/ledger/professionals/{professional.user_id}/settlements",
        json={"amount": "10"},
    )
    assert resp.status_code == 503
    assert resp.headers["retry-after"] == "1"
    assert resp.json() == {
        "success": False,
        "message": "Professional balance is busy, please retry",
        "retryable": True,
    }


def test_exception_module_imports_without_deprecation_warnings():
    path = Path(__file__).resolve().parents[1] / "src" / "core" / "exceptions.py"
    module_spec = importlib.util.spec_from_file_location("exceptions_copy", path)
    module = importlib.util.module_from_spec(module_spec)
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        module_spec.loader.exec_module(module)
    assert module.ValidationError("bad input").status_code == 422

"""HTTP API tests."""
import uuid

from crm_chat.chat import ChatSessionManager, MessageHandler, connection_registry
from crm_chat.core.messages import AUTH_INVALID_CREDENTIALS, REG_EMAIL_EXISTS
from crm_chat.core.security import create_access_token
from crm_chat.models import UserActivity

from .conftest import PASSWORD, FakeSocket, auth_headers, subject_of


def register(client, email="new.agent@example.com", role="agent", password=PASSWORD, name="New Agent"):
    return client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "role": role, "name": name},
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["redis"] is False


def test_register_returns_token_and_user(client):
    response = register(client, email="New.Agent@Example.com")

    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "new.agent@example.com"
    assert body["user"]["role"] == "agent"
    assert "password_hash" not in body["user"]


def test_register_duplicate_email(client):
    register(client)
    response = register(client, email="NEW.AGENT@example.com")

    assert response.status_code == 409
    assert response.json() == {"error": REG_EMAIL_EXISTS}


def test_register_weak_password(client):
    response = register(client, password="onlyletters")

    assert response.status_code == 400
    assert "error" in response.json()


def test_register_unknown_role_is_bad_request(client):
    response = register(client, role="superuser")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["details"]


def test_login_success_logs_activity(client, db, agent):
    response = client.post("/api/v1/auth/login", json={"email": agent.email, "password": PASSWORD})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == str(agent.id)
    activities = db.query(UserActivity).filter(UserActivity.user_id == agent.id).all()
    assert [a.activity_type for a in activities] == ["login_success"]


def test_login_bad_password(client, db, agent):
    response = client.post("/api/v1/auth/login", json={"email": agent.email, "password": "Wrong1234"})

    assert response.status_code == 401
    assert response.json() == {"error": AUTH_INVALID_CREDENTIALS}
    activity = db.query(UserActivity).filter(UserActivity.user_id == agent.id).one()
    assert activity.activity_type == "login_failed"
    assert activity.details["reason"] == "Invalid password"


def test_login_unknown_user(client):
    response = client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert response.status_code == 401


def test_login_inactive_user(client, db, agent):
    agent.is_active = False
    db.commit()

    response = client.post("/api/v1/auth/login", json={"email": agent.email, "password": PASSWORD})
    assert response.status_code == 403


def test_profile_requires_token(client):
    response = client.get("/api/v1/profile")

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


def test_profile_rejects_invalid_token(client):
    response = client.get("/api/v1/profile", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 403


def test_get_profile(client, agent):
    response = client.get("/api/v1/profile", headers=auth_headers(agent))

    assert response.status_code == 200
    assert response.json()["email"] == agent.email


def test_update_profile_fields(client, agent):
    response = client.put(
        "/api/v1/profile",
        headers=auth_headers(agent),
        json={"name": "Renamed", "phone": "+1 555 0100", "email": "Renamed@Example.com"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Renamed"
    assert body["phone"] == "+1 555 0100"
    assert body["email"] == "renamed@example.com"


def test_update_profile_email_conflict(client, make_user, agent):
    other = make_user("agent", email="taken@example.com")

    response = client.put("/api/v1/profile", headers=auth_headers(agent), json={"email": other.email})
    assert response.status_code == 409


def test_change_password(client, db, agent):
    headers = auth_headers(agent)

    wrong = client.put(
        "/api/v1/profile",
        headers=headers,
        json={"currentPassword": "Wrong1234", "newPassword": "Changed123"},
    )
    assert wrong.status_code == 401

    changed = client.put(
        "/api/v1/profile",
        headers=headers,
        json={"currentPassword": PASSWORD, "newPassword": "Changed123"},
    )
    assert changed.status_code == 200

    login = client.post("/api/v1/auth/login", json={"email": agent.email, "password": "Changed123"})
    assert login.status_code == 200
    types = {a.activity_type for a in db.query(UserActivity).filter(UserActivity.user_id == agent.id)}
    assert {"profile_update", "password_change", "login_success"} <= types


def test_list_users_requires_permission(client, make_user, agent):
    manager = make_user("manager")

    assert client.get("/api/v1/users", headers=auth_headers(agent)).status_code == 403

    response = client.get("/api/v1/users", headers=auth_headers(manager))
    assert response.status_code == 200
    assert {u["email"] for u in response.json()} == {agent.email, manager.email}


def test_activities_scoped_for_non_admins(client, make_user):
    manager = make_user("manager")
    admin = make_user("admin")
    for user in (manager, admin):
        client.post("/api/v1/auth/login", json={"email": user.email, "password": PASSWORD})

    own = client.get("/api/v1/activities", headers=auth_headers(manager)).json()
    assert {a["user_id"] for a in own} == {str(manager.id)}

    everything = client.get("/api/v1/activities", headers=auth_headers(admin)).json()
    assert {a["user_id"] for a in everything} == {str(manager.id), str(admin.id)}

    sessions = client.get("/api/v1/sessions", headers=auth_headers(admin)).json()
    assert {a["activity_type"] for a in sessions} == {"login_success"}


def test_create_customer(client, make_user, agent):
    manager = make_user("manager")

    response = client.post(
        "/api/v1/customers",
        headers=auth_headers(manager),
        json={"name": "Globex", "email": "ops@globex.example.com", "assigned_to": str(agent.id)},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "lead"
    assert body["created_by"] == str(manager.id)
    assert body["last_contact_date"]


def test_agent_cannot_create_customer(client, agent):
    response = client.post("/api/v1/customers", headers=auth_headers(agent), json={"name": "Nope"})
    assert response.status_code == 403


def test_create_customer_invalid_status(client, make_user):
    response = client.post(
        "/api/v1/customers",
        headers=auth_headers(make_user("admin")),
        json={"name": "Initech", "status": "archived"},
    )
    assert response.status_code == 400


def test_list_customers_agent_sees_assigned_only(client, make_user, make_customer, agent):
    make_customer("Assigned Co", assigned_to=agent.id)
    make_customer("Someone Else Co")
    admin = make_user("admin")

    mine = client.get("/api/v1/customers", headers=auth_headers(agent)).json()
    assert [c["name"] for c in mine["customers"]] == ["Assigned Co"]
    assert mine["total"] == 1

    everyone = client.get("/api/v1/customers", headers=auth_headers(admin)).json()
    assert [c["name"] for c in everyone["customers"]] == ["Assigned Co", "Someone Else Co"]


def test_list_customers_search_and_paging(client, make_user, make_customer):
    for name in ("Alpha", "Beta", "Alphabet"):
        make_customer(name)
    admin = make_user("admin")

    found = client.get("/api/v1/customers", headers=auth_headers(admin), params={"search": "alpha"}).json()
    assert [c["name"] for c in found["customers"]] == ["Alpha", "Alphabet"]

    page = client.get(
        "/api/v1/customers",
        headers=auth_headers(admin),
        params={"page": 2, "pageSize": 2},
    ).json()
    assert page["total"] == 3
    assert [c["name"] for c in page["customers"]] == ["Beta"]


def test_get_customer(client, agent, customer):
    response = client.get(f"/api/v1/customers/{customer.id}", headers=auth_headers(agent))
    assert response.status_code == 200
    assert response.json()["name"] == customer.name

    missing = client.get(f"/api/v1/customers/{uuid.uuid4()}", headers=auth_headers(agent))
    assert missing.status_code == 404
    assert missing.json() == {"error": "Customer not found"}


def test_chat_sessions_listing(client, db, make_user, agent, customer):
    other_agent = make_user("agent")
    admin = make_user("admin")
    mine = ChatSessionManager.start_chat(db, customer.id, agent.id)
    ChatSessionManager.start_chat(db, customer.id, other_agent.id)

    own = client.get("/api/v1/chat/sessions", headers=auth_headers(agent)).json()
    assert [s["id"] for s in own] == [str(mine.id)]
    assert own[0]["customer"]["name"] == customer.name

    assert len(client.get("/api/v1/chat/sessions", headers=auth_headers(admin)).json()) == 2


def test_chat_session_messages(client, db, make_user, agent, customer):
    chat_session = ChatSessionManager.start_chat(db, customer.id, agent.id)
    MessageHandler.create_message(db, chat_session.id, agent.id, "Hello")
    url = f"/api/v1/chat/sessions/{chat_session.id}/messages"

    response = client.get(url, headers=auth_headers(agent))
    assert response.status_code == 200
    assert [m["content"] for m in response.json()] == ["Hello"]

    outsider = client.get(url, headers=auth_headers(make_user("agent")))
    assert outsider.status_code == 403
    assert outsider.json() == {"error": "Unauthorized"}

    assert client.get(url, headers=auth_headers(make_user("admin"))).status_code == 200

    missing = client.get(f"/api/v1/chat/sessions/{uuid.uuid4()}/messages", headers=auth_headers(agent))
    assert missing.status_code == 404


def test_logout_is_recorded_as_login_session(client, make_user):
    admin = make_user("admin")
    headers = auth_headers(admin)
    client.post("/api/v1/auth/login", json={"email": admin.email, "password": PASSWORD})

    assert client.post("/api/v1/auth/logout", headers=headers).status_code == 204

    sessions = client.get("/api/v1/sessions", headers=headers).json()
    assert sorted(a["activity_type"] for a in sessions) == ["login_success", "logout"]


def test_logout_requires_token(client):
    assert client.post("/api/v1/auth/logout").status_code == 401


def test_foreign_subject_token_is_rejected(client):
    headers = {"Authorization": f"Bearer {create_access_token(subject='not-a-uuid')}"}

    for path in ("/api/v1/chat/sessions", "/api/v1/customers"):
        response = client.get(path, headers=headers)
        assert response.status_code == 403
        assert response.json() == {"error": "Invalid token payload"}


def test_create_chat_session_notifies_own_connections(client, make_user, agent, customer):
    own_socket, other_socket = FakeSocket(), FakeSocket()
    connection_registry.register(own_socket, subject_of(agent))
    connection_registry.register(other_socket, subject_of(make_user("agent")))

    response = client.post(
        "/api/v1/chat/sessions",
        headers=auth_headers(agent),
        json={"customerId": str(customer.id)},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["agent_id"] == str(agent.id)
    assert body["status"] == "active"
    queued = own_socket.of_type("chat_queued")
    assert [event["id"] for event in queued] == [body["id"]]
    assert queued[0]["customer"]["name"] == customer.name
    assert other_socket.sent == []


def test_create_chat_session_unknown_customer(client, agent):
    response = client.post(
        "/api/v1/chat/sessions",
        headers=auth_headers(agent),
        json={"customerId": str(uuid.uuid4())},
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Customer not found"}

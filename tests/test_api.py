import pytest


@pytest.fixture()
def ids(users):
    """Plain ids, so requests do not depend on the fixture session's state."""
    return {name: user.id for name, user in users.items()}


def as_user(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture()
def created_order(client, ids, order_data):
    response = client.post("/api/orders/", json=order_data(), headers=as_user(ids["office"]))
    assert response.status_code == 201
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_identity_header_required(client, ids):
    assert client.get("/api/orders/").status_code == 401
    assert client.get("/api/orders/", headers=as_user("nobody")).status_code == 401
    assert client.get("/api/orders/", headers=as_user(ids["inactive"])).status_code == 403


def test_create_order_returns_departments_and_progress(client, created_order):
    assert created_order["status"] == "DRAFT"
    assert created_order["order_number"].startswith("ORD-")
    assert created_order["current_department"] == "CAD"
    assert created_order["completion_percentage"] == 0
    assert created_order["customer_name"] == "Priya Sharma"


def test_workers_cannot_create_orders(client, ids, order_data):
    response = client.post("/api/orders/", json=order_data(), headers=as_user(ids["CAD"]))
    assert response.status_code == 403


def test_invalid_payload_is_422(client, ids, order_data):
    payload = order_data(details={"gold_weight_initial": -1, "purity": 22})
    response = client.post("/api/orders/", json=payload, headers=as_user(ids["office"]))
    assert response.status_code == 422


def test_customer_fields_hidden_from_factory_roles(client, ids, created_order):
    order_id = created_order["id"]

    for role in ("manager", "CAD"):
        body = client.get(f"/api/orders/{order_id}", headers=as_user(ids[role])).json()
        assert body["customer_name"] is None
        assert body["customer_phone"] is None
        assert body["customer_email"] is None

    listed = client.get("/api/orders/", headers=as_user(ids["manager"])).json()
    assert listed[0]["customer_name"] is None

    body = client.get(f"/api/orders/{order_id}", headers=as_user(ids["admin"])).json()
    assert body["customer_phone"] == "+91 98765 43210"


def test_factory_roles_cannot_search_by_customer(client, ids, created_order):
    for role in ("manager", "CAD"):
        hits = client.get("/api/orders/?search=Priya", headers=as_user(ids[role])).json()
        assert hits == []
        by_number = client.get(
            f"/api/orders/?search={created_order['order_number']}", headers=as_user(ids[role])
        ).json()
        assert [order["id"] for order in by_number] == [created_order["id"]]

    hits = client.get("/api/orders/?search=Priya", headers=as_user(ids["office"])).json()
    assert [order["id"] for order in hits] == [created_order["id"]]


def test_unknown_order_is_404(client, ids):
    response = client.get("/api/orders/missing", headers=as_user(ids["admin"]))
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_unknown_department_is_404(client, ids, created_order):
    response = client.get(
        f"/api/orders/{created_order['id']}/departments/ENGRAVING", headers=as_user(ids["admin"])
    )
    assert response.status_code == 404


def test_start_without_assignment_is_400(client, ids, created_order):
    response = client.post(
        f"/api/orders/{created_order['id']}/departments/CAD/start",
        json={"gold_weight_in": 25.5},
        headers=as_user(ids["manager"]),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "ALREADY_STARTED"


def test_department_flow(client, ids, created_order):
    order_id = created_order["id"]
    base = f"/api/orders/{order_id}/departments/CAD"

    response = client.post(f"{base}/assign", json={"worker_id": ids["CAD"]}, headers=as_user(ids["manager"]))
    assert response.status_code == 200
    assert response.json()["status"] == "NOT_STARTED"
    assert response.json()["assigned_to"]["id"] == ids["CAD"]

    # Another department's worker cannot touch the row
    response = client.post(f"{base}/start", json={"gold_weight_in": 25.5}, headers=as_user(ids["PRINT"]))
    assert response.status_code == 403

    response = client.post(f"{base}/start", json={"gold_weight_in": 25.5}, headers=as_user(ids["CAD"]))
    assert response.status_code == 200
    assert response.json()["status"] == "IN_PROGRESS"

    response = client.post(
        f"{base}/work",
        json={"form_data": {"design_file": "ring.3dm"}, "photos": ["front.jpg"]},
        headers=as_user(ids["CAD"]),
    )
    assert response.status_code == 200
    assert response.json()["photos"] == ["front.jpg"]

    response = client.post(f"{base}/complete", json={"gold_weight_out": 25.8}, headers=as_user(ids["CAD"]))
    body = response.json()
    assert response.status_code == 200
    assert body["gold_loss"] == -0.3
    assert body["is_weight_gain"] is True

    summary = client.get(f"/api/orders/{order_id}/departments", headers=as_user(ids["manager"])).json()
    assert summary["order_status"] == "IN_FACTORY"
    assert summary["summary"]["completed_departments"] == 1
    assert summary["summary"]["current_department"] == "PRINT"
    assert len(summary["departments"]) == 9


def test_self_assign_and_pending_queue(client, ids, created_order):
    order_id = created_order["id"]

    queue = client.get("/api/workers/me/pending", headers=as_user(ids["CAD"])).json()
    assert [item["order_id"] for item in queue] == [order_id]

    response = client.post(
        f"/api/orders/{order_id}/departments/PRINT/self-assign", headers=as_user(ids["CAD"])
    )
    assert response.status_code == 403

    response = client.post(
        f"/api/orders/{order_id}/departments/CAD/self-assign", headers=as_user(ids["CAD"])
    )
    assert response.status_code == 200
    assert client.get("/api/workers/me/pending", headers=as_user(ids["CAD"])).json() == []

    workload = client.get("/api/workers/departments/CAD", headers=as_user(ids["manager"])).json()
    assert workload == [
        {"id": ids["CAD"], "name": "Cad Worker", "email": "cad@example.com", "current_workload": 1}
    ]


def test_assignment_notifies_worker(client, ids, created_order):
    client.post(
        f"/api/orders/{created_order['id']}/departments/CAD/assign",
        json={"worker_id": ids["CAD"]},
        headers=as_user(ids["manager"]),
    )
    inbox = client.get("/api/notifications/", headers=as_user(ids["CAD"])).json()
    assert len(inbox) == 1
    assert inbox[0]["type"] == "ASSIGNMENT"

    response = client.post(f"/api/notifications/{inbox[0]['id']}/read", headers=as_user(ids["CAD"]))
    assert response.json()["is_read"] is True


def test_submission_over_http(client, ids, created_order, finish_departments):
    order_id = created_order["id"]
    finish_departments(order_id)

    response = client.post(
        f"/api/orders/{order_id}/submission",
        json={"final_gold_weight": 23.0, "final_purity": 22},
        headers=as_user(ids["manager"]),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "HIGH_VARIANCE_UNACKNOWLEDGED"

    response = client.post(
        f"/api/orders/{order_id}/submission",
        json={"final_gold_weight": 23.0, "final_purity": 22, "acknowledge_variance": True},
        headers=as_user(ids["manager"]),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["customer_name"] is None
    assert body["weight_variance"]["is_high_variance"] is True

    response = client.post(
        f"/api/orders/{order_id}/submission",
        json={"final_gold_weight": 23.0, "final_purity": 22, "acknowledge_variance": True},
        headers=as_user(ids["manager"]),
    )
    assert response.status_code == 409

    response = client.put(
        f"/api/submissions/{body['id']}/approval",
        json={"approved": True, "notes": "ok"},
        headers=as_user(ids["office"]),
    )
    assert response.status_code == 200
    assert response.json()["customer_approved"] is True
    assert response.json()["customer_name"] == "Priya Sharma"

    listing = client.get("/api/submissions", headers=as_user(ids["office"])).json()
    assert listing["summary"]["total_submissions"] == 1
    assert listing["summary"]["high_variance_count"] == 1

    stats = client.get("/api/submissions/stats", headers=as_user(ids["office"])).json()
    assert stats["pending_approval_count"] == 0

    response = client.delete(f"/api/submissions/{body['id']}", headers=as_user(ids["manager"]))
    assert response.status_code == 400


def test_workers_cannot_submit(client, ids, created_order):
    response = client.post(
        f"/api/orders/{created_order['id']}/submission",
        json={"final_gold_weight": 23.0, "final_purity": 22},
        headers=as_user(ids["CAD"]),
    )
    assert response.status_code == 403


def test_user_directory_is_admin_only(client, ids):
    payload = {"name": "New Setter", "email": "setter2@example.com", "role": "DEPARTMENT_WORKER",
               "department": "SETTING"}
    assert client.post("/api/users/", json=payload, headers=as_user(ids["office"])).status_code == 403

    response = client.post("/api/users/", json=payload, headers=as_user(ids["admin"]))
    assert response.status_code == 201
    assert response.json()["department"] == "SETTING"

    missing_department = {"name": "No Dept", "email": "nodept@example.com", "role": "DEPARTMENT_WORKER"}
    assert client.post("/api/users/", json=missing_department, headers=as_user(ids["admin"])).status_code == 422

    workers = client.get("/api/users/?department=SETTING", headers=as_user(ids["admin"])).json()
    assert {user["email"] for user in workers} == {"setting@example.com", "setter2@example.com"}


def test_delete_order_over_http(client, ids, created_order):
    order_id = created_order["id"]
    assert client.delete(f"/api/orders/{order_id}", headers=as_user(ids["admin"])).status_code == 204
    assert client.get(f"/api/orders/{order_id}", headers=as_user(ids["admin"])).status_code == 404


def test_order_stats_over_http(client, ids, created_order):
    body = client.get("/api/orders/stats", headers=as_user(ids["CAD"])).json()
    assert body["total"] == 1
    assert body["by_status"]["DRAFT"] == 1


def test_factory_reports_are_for_managers(client, ids, created_order):
    assert client.get("/api/factory/stats", headers=as_user(ids["CAD"])).status_code == 403

    stats = client.get("/api/factory/stats", headers=as_user(ids["manager"])).json()
    assert stats["orders_in_factory"] == 0

    base = f"/api/orders/{created_order['id']}/departments/CAD"
    client.post(f"{base}/assign", json={"worker_id": ids["CAD"]}, headers=as_user(ids["manager"]))
    client.post(f"{base}/start", json={"gold_weight_in": 25.5}, headers=as_user(ids["CAD"]))

    body = client.get(
        f"/api/factory/movements?order_id={created_order['id']}", headers=as_user(ids["manager"])
    ).json()
    assert body["total"] == 1
    assert body["movements"][0]["department"] == "CAD"
    assert body["movements"][0]["gold_weight_in"] == 25.5

    response = client.get("/api/factory/movements?order_id=missing", headers=as_user(ids["manager"]))
    assert response.status_code == 404

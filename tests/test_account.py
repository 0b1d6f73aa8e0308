ADDRESS = {
    "fullName": "Asha Rao",
    "phoneNumber": "9876543210",
    "addressLine1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postalCode": "560001",
}


def test_add_address_defaults(client, customer):
    _, headers = customer

    response = client.post("/addresses/add", json=ADDRESS, headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["type"] == "home"
    assert body["country"] == "India"
    assert body["isDefault"] is False


def test_only_one_default_address(client, customer):
    _, headers = customer
    home = client.post("/addresses/add", json={**ADDRESS, "isDefault": True}, headers=headers).json()
    work = client.post(
        "/addresses/add", json={**ADDRESS, "type": "work", "isDefault": True}, headers=headers
    ).json()

    defaults = [a["id"] for a in client.get("/addresses/list", headers=headers).json() if a["isDefault"]]
    assert defaults == [work["id"]]

    client.post("/addresses/update", json={"id": home["id"], "isDefault": True}, headers=headers)

    defaults = [a["id"] for a in client.get("/addresses/list", headers=headers).json() if a["isDefault"]]
    assert defaults == [home["id"]]


def test_update_address_keeps_other_fields(client, customer):
    _, headers = customer
    created = client.post("/addresses/add", json=ADDRESS, headers=headers).json()

    response = client.post("/addresses/update", json={"id": created["id"], "city": "Mysuru"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["city"] == "Mysuru"
    assert response.json()["addressLine1"] == "12 MG Road"


def test_addresses_belong_to_their_owner(client, customer, other_customer):
    _, headers = customer
    _, other_headers = other_customer
    created = client.post("/addresses/add", json=ADDRESS, headers=headers).json()

    assert client.get("/addresses/list", headers=other_headers).json() == []
    update = client.post("/addresses/update", json={"id": created["id"], "city": "Pune"}, headers=other_headers)
    delete = client.post("/addresses/delete", json={"id": created["id"]}, headers=other_headers)
    assert update.status_code == 404
    assert delete.status_code == 404

    assert client.post("/addresses/delete", json={"id": created["id"]}, headers=headers).json() == {"success": True}
    assert client.get("/addresses/list", headers=headers).json() == []


def test_address_validation(client, customer):
    _, headers = customer

    response = client.post("/addresses/add", json={**ADDRESS, "postalCode": "1"}, headers=headers)

    assert response.status_code == 422
    assert response.json()["kind"] == "validation"


def test_payment_methods(client, customer, other_customer):
    _, headers = customer
    _, other_headers = other_customer

    upi = client.post("/paymentMethods/add", json={"type": "upi", "upiId": "asha@okbank"}, headers=headers)
    card = client.post(
        "/paymentMethods/add",
        json={"type": "credit_card", "cardLastFour": "4242", "cardBrand": "Visa", "isDefault": True},
        headers=headers,
    )

    assert upi.status_code == 201
    assert card.status_code == 201
    methods = client.get("/paymentMethods/list", headers=headers).json()
    assert [m["type"] for m in methods] == ["upi", "credit_card"]
    assert client.get("/paymentMethods/list", headers=other_headers).json() == []

    removed = client.post("/paymentMethods/delete", json={"id": upi.json()["id"]}, headers=other_headers)
    assert removed.status_code == 404
    removed = client.post("/paymentMethods/delete", json={"id": upi.json()["id"]}, headers=headers)
    assert removed.json() == {"success": True}


def test_payment_method_needs_identifier(client, customer):
    _, headers = customer

    no_upi = client.post("/paymentMethods/add", json={"type": "upi"}, headers=headers)
    bad_card = client.post("/paymentMethods/add", json={"type": "debit_card", "cardLastFour": "42"}, headers=headers)

    assert no_upi.status_code == 422
    assert bad_card.status_code == 422

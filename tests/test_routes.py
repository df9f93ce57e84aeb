import pytest


@pytest.fixture
async def parties(make_user, make_product):
    seller = await make_user("Seller")
    buyer = await make_user("Buyer")
    product = await make_product(seller.id, name="Lamp", price=10000)
    return seller, buyer, product


async def test_health(client):
    response = await client.get("/auth/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_register_then_login(client):
    response = await client.post(
        "/auth/register/",
        json={"name": "Ada", "email": "Ada@Shop.com", "password": "correct-horse"},
    )
    assert response.status_code == 201
    assert response.json()["email"] == "ada@shop.com"

    again = await client.post(
        "/auth/register/",
        json={"name": "Ada", "email": "ada@shop.com", "password": "correct-horse"},
    )
    assert again.status_code == 400
    assert again.json()["code"] == "already_exists"

    bad = await client.post("/auth/login/", data={"username": "ada@shop.com", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.json()["code"] == "unauthorised"

    good = await client.post("/auth/login/", data={"username": "ada@shop.com", "password": "correct-horse"})
    assert good.status_code == 200
    token = good.json()["access_token"]

    created = await client.post(
        "/products/",
        json={"name": "Desk", "price": 2500},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert created.status_code == 201


async def test_missing_or_bad_token(client, parties):
    _, _, product = parties

    missing = await client.get(f"/products/{product.id}/")
    assert missing.status_code == 401
    assert missing.json() == {"detail": "Authorization header required", "code": "unauthorised"}

    bad = await client.get(f"/products/{product.id}/", headers={"Authorization": "Bearer nonsense"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid or expired token"


@pytest.mark.parametrize("amount", [0, -5, "5000", 50.5, None])
async def test_offer_amount_must_be_positive_integer(client, parties, auth_header, amount):
    _, buyer, product = parties
    response = await client.post(
        f"/products/{product.id}/offers/", json={"amount": amount}, headers=auth_header(buyer)
    )
    assert response.status_code == 422


async def test_negotiation_over_http(client, parties, auth_header):
    seller, buyer, product = parties

    made = await client.post(
        f"/products/{product.id}/offers/", json={"amount": 5000}, headers=auth_header(buyer)
    )
    assert made.status_code == 201
    offer = made.json()
    assert (offer["status"], offer["proposed_by"]) == ("pending", "buyer")

    duplicate = await client.post(
        f"/products/{product.id}/offers/", json={"amount": 5200}, headers=auth_header(buyer)
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "already_exists"

    inbox = await client.get("/offers/?status=pending&seller=me", headers=auth_header(seller))
    assert [o["id"] for o in inbox.json()["items"]] == [offer["id"]]

    own = await client.post(f"/offers/{offer['id']}/accept/", headers=auth_header(buyer))
    assert own.status_code == 400
    assert own.json() == {"detail": "Cannot accept your own offer", "code": "invalid_state"}

    countered = await client.post(
        f"/offers/{offer['id']}/counter/", json={"amount": 7000}, headers=auth_header(seller)
    )
    assert countered.status_code == 201
    counter = countered.json()
    assert counter["parent_offer_id"] == offer["id"]

    details = await client.get(f"/products/{product.id}/", headers=auth_header(buyer))
    body = details.json()
    assert body["seller_name"] == "Seller"
    assert [o["status"] for o in body["offers"]] == ["countered", "pending"]
    assert body["offers"][1]["can_accept"] is True
    assert body["can_make_initial_offer"] is False

    accepted = await client.post(f"/offers/{counter['id']}/accept/", headers=auth_header(buyer))
    assert accepted.status_code == 200
    assert accepted.json() == {"success": True, "offer_id": counter["id"], "amount": 7000}

    reserved = await client.get("/offers/?status=accepted&buyer=me", headers=auth_header(buyer))
    assert [o["id"] for o in reserved.json()["items"]] == [counter["id"]]

    bought = await client.post(
        f"/products/{product.id}/purchase/", json={"offer_id": counter["id"]}, headers=auth_header(buyer)
    )
    assert bought.status_code == 200
    assert bought.json()["final_price"] == 7000

    again = await client.post(f"/products/{product.id}/purchase/", json={}, headers=auth_header(buyer))
    assert again.status_code == 400
    assert again.json() == {"detail": "Product is already sold", "code": "invalid_state"}

    sales = await client.get("/transactions/", headers=auth_header(seller))
    [sale] = sales.json()
    assert (sale["product_name"], sale["buyer_name"], sale["final_price"]) == ("Lamp", "Buyer", 7000)
    assert sale["offer_id"] == counter["id"]


async def test_error_statuses(client, parties, make_user, auth_header):
    seller, buyer, product = parties
    stranger = await make_user("Stranger")

    made = await client.post(
        f"/products/{product.id}/offers/", json={"amount": 5000}, headers=auth_header(buyer)
    )
    offer_id = made.json()["id"]

    forbidden = await client.post(
        f"/offers/{offer_id}/counter/", json={"amount": 6000}, headers=auth_header(stranger)
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "forbidden"

    missing = await client.post("/offers/999999/accept/", headers=auth_header(seller))
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Offer not found", "code": "not_found"}

    await client.post(f"/offers/{offer_id}/accept/", headers=auth_header(seller))
    taken = await client.post(f"/products/{product.id}/purchase/", json={}, headers=auth_header(stranger))
    assert taken.status_code == 403

    bad_query = await client.get("/offers/?status=accepted&seller=me", headers=auth_header(seller))
    assert bad_query.status_code == 400
    assert bad_query.json()["detail"] == "Invalid query parameters"

    bad_cursor = await client.get("/offers/?status=pending&seller=me&cursor=zzz", headers=auth_header(seller))
    assert bad_cursor.status_code == 400


async def test_seller_product_listing(client, parties, auth_header):
    seller, buyer, product = parties
    await client.post(f"/products/{product.id}/offers/", json={"amount": 5000}, headers=auth_header(buyer))

    listing = await client.get("/products/?seller=me", headers=auth_header(seller))
    assert listing.status_code == 200
    [item] = listing.json()["items"]
    assert (item["id"], item["offer_count"]) == (product.id, 1)

    unfiltered = await client.get("/products/", headers=auth_header(seller))
    assert unfiltered.status_code == 422

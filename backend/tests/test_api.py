def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_endpoints_require_a_token(client):
    assert client.get("/foods").status_code == 401
    assert client.get("/foods", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_signup_rejects_duplicate_email_or_phone(client, auth_headers):
    response = client.post("/users/signup", json={
        "first_name": "Other",
        "last_name": "Person",
        "email": "other@example.com",
        "phone": "+100000001",
        "password": "another-pass",
    })
    assert response.status_code == 400
    assert response.json() == {"error": "This email or phone already exists"}


def test_login_refreshes_tokens(client, auth_headers):
    response = client.post("/users/login", json={"email": "ANNA@example.com", "password": "s3cret-pass"})
    assert response.status_code == 200
    assert response.json()["token"]

    wrong = client.post("/users/login", json={"email": "anna@example.com", "password": "wrong-pass"})
    unknown = client.post("/users/login", json={"email": "nobody@example.com", "password": "wrong-pass"})
    assert wrong.status_code == unknown.status_code == 400
    assert wrong.json() == unknown.json()


def test_food_order_invoice_flow(client, auth_headers, seed):
    menu = seed.menu()
    table = seed.table(number=6)

    soup = client.post("/foods", headers=auth_headers, json={
        "name": "Soup", "price": "5.004", "food_image": "soup.png", "menu_id": menu.menu_id,
    })
    assert soup.status_code == 200, soup.text
    assert soup.json()["price"] == "5.00"

    composed = client.post("/orderitems", headers=auth_headers, json={
        "table_id": table.table_id,
        "order_items": [{"food_id": soup.json()["food_id"], "quantity": 2}],
    })
    assert composed.status_code == 200, composed.text
    order_id = composed.json()["order_id"]
    assert len(composed.json()["order_item_ids"]) == 1

    view = client.get(f"/orders/{order_id}/view", headers=auth_headers).json()
    assert view["payment_due"] == "5.00"
    assert view["table_number"] == 6

    invoice = client.post("/invoices", headers=auth_headers, json={"order_id": order_id})
    assert invoice.status_code == 200, invoice.text

    invoice_view = client.get(f"/invoices/{invoice.json()['invoice_id']}", headers=auth_headers).json()
    assert invoice_view["payment_method"] == "null"
    assert invoice_view["payment_due"] == "5.00"
    assert invoice_view["order_details"][0]["food_name"] == "Soup"


def test_food_for_unknown_menu(client, auth_headers):
    response = client.post("/foods", headers=auth_headers, json={
        "name": "Soup", "price": "5.00", "food_image": "soup.png", "menu_id": "missing",
    })
    assert response.status_code == 404
    assert response.json() == {"error": "Menu was not found"}


def test_compose_with_unknown_table(client, auth_headers, seed):
    soup = seed.food()
    response = client.post("/orderitems", headers=auth_headers, json={
        "table_id": "missing",
        "order_items": [{"food_id": soup.food_id, "quantity": 1}],
    })
    assert response.status_code == 404


def test_unknown_order_view(client, auth_headers):
    assert client.get("/orders/missing/view", headers=auth_headers).status_code == 404


def test_food_listing_pages(client, auth_headers, seed):
    menu = seed.menu()
    for i in range(12):
        seed.food(menu_id=menu.menu_id, name=f"Dish {i}")

    body = client.get("/foods?page=2&recordPerPage=5", headers=auth_headers).json()
    assert body["total_count"] == 12
    assert [food["name"] for food in body["food_items"]] == [f"Dish {i}" for i in range(5, 10)]

    # unparsable values fall back to the defaults
    body = client.get("/foods?page=x&recordPerPage=y", headers=auth_headers).json()
    assert len(body["food_items"]) == 10

    assert client.get("/foods?page=0", headers=auth_headers).status_code == 400


def test_patch_missing_order_item(client, auth_headers):
    response = client.patch("/orderitems/missing", headers=auth_headers, json={"quantity": 2})
    assert response.status_code == 404


def signup(client, email, phone):
    response = client.post("/users/signup", json={
        "first_name": "Bob",
        "last_name": "Jones",
        "email": email,
        "phone": phone,
        "password": "bobs-pass",
    })
    assert response.status_code == 200, response.text
    return response.json()


def test_menu_then_food_over_http(client, auth_headers):
    menu = client.post("/menus", headers=auth_headers, json={"name": "Dinner", "category": "Main"})
    assert menu.status_code == 200, menu.text
    menu_id = menu.json()["menu_id"]

    assert client.get(f"/menus/{menu_id}", headers=auth_headers).json()["name"] == "Dinner"
    assert client.get("/menus", headers=auth_headers).json()["total_count"] == 1

    food = client.post("/foods", headers=auth_headers, json={
        "name": "Stew", "price": "7.5", "food_image": "stew.png", "menu_id": menu_id,
    })
    assert food.status_code == 200, food.text
    assert food.json()["menu_id"] == menu_id


def test_menu_with_past_window_is_rejected(client, auth_headers):
    response = client.post("/menus", headers=auth_headers, json={
        "name": "Old", "category": "Main",
        "start_date": "2000-01-01T00:00:00Z", "end_date": "2000-02-01T00:00:00Z",
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Kindly retype the time"}


def test_unknown_menu_is_404(client, auth_headers):
    assert client.get("/menus/missing", headers=auth_headers).status_code == 404


def test_oversized_unit_price_is_a_bad_request(client, auth_headers, seed):
    soup = seed.food()
    response = client.post("/orderitems", headers=auth_headers, json={
        "order_items": [{"food_id": soup.food_id, "quantity": 1, "unit_price": "1e30"}],
    })
    assert response.status_code == 400

    response = client.post("/orderitems", headers=auth_headers, json={
        "order_items": [{"food_id": soup.food_id, "quantity": 1, "unit_price": "100000000000"}],
    })
    assert response.status_code == 400


def test_oversized_food_price_is_a_bad_request(client, auth_headers, seed):
    menu = seed.menu()
    response = client.post("/foods", headers=auth_headers, json={
        "name": "Caviar", "price": "1e30", "food_image": "c.png", "menu_id": menu.menu_id,
    })
    assert response.status_code == 400


def test_list_orders_items_and_invoices(client, auth_headers, seed):
    soup = seed.food()
    for _ in range(3):
        composed = client.post("/orderitems", headers=auth_headers, json={
            "order_items": [{"food_id": soup.food_id, "quantity": 1}, {"food_id": soup.food_id, "quantity": 2}],
        })
        assert composed.status_code == 200, composed.text
        client.post("/invoices", headers=auth_headers, json={"order_id": composed.json()["order_id"]})

    orders = client.get("/orders?page=1&recordPerPage=2", headers=auth_headers).json()
    assert orders["total_count"] == 3
    assert len(orders["orders"]) == 2

    items = client.get("/orderitems", headers=auth_headers).json()
    assert items["total_count"] == 6
    assert [item["quantity"] for item in items["order_items"]] == [1, 2] * 3

    invoices = client.get("/invoices", headers=auth_headers).json()
    assert invoices["total_count"] == 3
    assert {invoice["payment_status"] for invoice in invoices["invoices"]} == {"PENDING"}


def test_user_listing_does_not_expose_tokens(client, auth_headers):
    bob = signup(client, "bob@example.com", "+100000002")

    users = client.get("/users", headers=auth_headers).json()["users"]
    assert {user["email"] for user in users} == {"anna@example.com", "bob@example.com"}
    assert all("token" not in user and "refresh_token" not in user for user in users)
    assert bob["token"] not in client.get("/users", headers=auth_headers).text

    single = client.get(f"/users/{bob['user_id']}", headers=auth_headers).json()
    assert "token" not in single


def test_refresh_rotates_tokens(client):
    bob = signup(client, "bob@example.com", "+100000002")

    refreshed = client.post("/users/refresh", json={"refresh_token": bob["refresh_token"]})
    assert refreshed.status_code == 200, refreshed.text
    assert refreshed.json()["refresh_token"] != bob["refresh_token"]

    headers = {"Authorization": f"Bearer {refreshed.json()['token']}"}
    assert client.get("/foods", headers=headers).status_code == 200

    # the previous refresh token is spent
    assert client.post("/users/refresh", json={"refresh_token": bob["refresh_token"]}).status_code == 400
    # an access token cannot be used to refresh
    assert client.post("/users/refresh", json={"refresh_token": bob["token"]}).status_code == 400


def test_empty_order_view_is_flagged(client, auth_headers):
    order = client.post("/orders", headers=auth_headers, json={})
    assert order.status_code == 200, order.text

    view = client.get(f"/orders/{order.json()['order_id']}/view", headers=auth_headers).json()
    assert view["is_empty"] is True
    assert view["total_count"] == 0

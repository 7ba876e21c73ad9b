"""Tests for the signed-in shopper's cart endpoints."""

from bson import ObjectId

from Models.cartModel import Cart


def add(client, headers, product, **body):
    return client.post("/api/cart/items", json={"productId": str(product.id), **body}, headers=headers)


class TestCartReads:
    def test_first_read_creates_an_empty_cart(self, client, customer, auth_headers):
        resp = client.get("/api/cart", headers=auth_headers(customer))

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["data"]["items"] == []
        assert body["data"]["status"] == "active"
        assert body["meta"] == {"totalQuantity": 0, "totalAmount": 0, "checkedAmount": 0}
        assert Cart.objects(user=customer.id).count() == 1

    def test_repeated_reads_reuse_the_cart(self, client, customer, auth_headers):
        headers = auth_headers(customer)
        client.get("/api/cart", headers=headers)
        client.get("/api/cart", headers=headers)

        assert Cart.objects(user=customer.id).count() == 1

    def test_cart_requires_a_token(self, client):
        assert client.get("/api/cart").status_code == 401
        assert client.delete("/api/cart").status_code == 401


class TestAddItem:
    def test_add_uses_catalog_price_by_default(self, client, customer, product, auth_headers):
        resp = add(client, auth_headers(customer), product, quantity=2)

        assert resp.status_code == 201
        body = resp.get_json()
        item = body["data"]["items"][0]
        assert item["productId"] == str(product.id)
        assert item["product"]["name"] == product.name
        assert item["priceSnapshot"] == 10000
        assert item["checked"] is True
        assert body["meta"]["totalAmount"] == 20000

    def test_same_product_merges_quantities(self, client, customer, product, auth_headers):
        headers = auth_headers(customer)
        add(client, headers, product, quantity=2)

        resp = add(client, headers, product, quantity=3)

        items = resp.get_json()["data"]["items"]
        assert len(items) == 1
        assert items[0]["quantity"] == 5

    def test_merge_fills_in_a_missing_unit_price(self, client, customer, product, auth_headers):
        headers = auth_headers(customer)
        add(client, headers, product, quantity=1)
        Cart._get_collection().update_one(
            {"user": customer.id, "items.product": product.id}, {"$set": {"items.$.price_snapshot": 0}}
        )

        resp = add(client, headers, product, quantity=1)

        item = resp.get_json()["data"]["items"][0]
        assert item["quantity"] == 2
        assert item["priceSnapshot"] == 10000

    def test_merge_keeps_an_existing_unit_price(self, client, customer, product, auth_headers):
        headers = auth_headers(customer)
        add(client, headers, product, quantity=1, priceSnapshot=8000)

        resp = add(client, headers, product, quantity=1)

        assert resp.get_json()["data"]["items"][0]["priceSnapshot"] == 8000

    def test_unchecked_lines_count_toward_total_only(self, client, customer, make_product, auth_headers):
        headers = auth_headers(customer)
        tee = make_product()
        cap = make_product(sku="CAP-01", name="Cap", price=5000, category="accessory")
        add(client, headers, tee, quantity=1)

        resp = add(client, headers, cap, quantity=2, checked=False)

        meta = resp.get_json()["meta"]
        assert meta["totalQuantity"] == 3
        assert meta["totalAmount"] == 20000
        assert meta["checkedAmount"] == 10000

    def test_unknown_product_is_404(self, client, customer, auth_headers):
        resp = client.post("/api/cart/items", json={"productId": str(ObjectId())}, headers=auth_headers(customer))

        assert resp.status_code == 404

    def test_bad_input_is_rejected(self, client, customer, product, auth_headers):
        headers = auth_headers(customer)

        assert add(client, headers, product, quantity=0).status_code == 400
        assert add(client, headers, product, quantity=1.5).status_code == 400
        assert add(client, headers, product, quantity="two").status_code == 400
        assert add(client, headers, product, priceSnapshot=-1).status_code == 400
        assert client.post("/api/cart/items", json={"productId": "xyz"}, headers=headers).status_code == 400


class TestUpdateItem:
    def test_quantity_is_replaced(self, client, customer, product, auth_headers):
        headers = auth_headers(customer)
        add(client, headers, product, quantity=2)

        resp = client.patch(f"/api/cart/items/{product.id}", json={"quantity": 4, "checked": False}, headers=headers)

        assert resp.status_code == 200
        item = resp.get_json()["data"]["items"][0]
        assert item["quantity"] == 4
        assert item["checked"] is False

    def test_zero_quantity_removes_the_line(self, client, customer, product, auth_headers):
        headers = auth_headers(customer)
        add(client, headers, product, quantity=2)

        resp = client.patch(f"/api/cart/items/{product.id}", json={"quantity": 0}, headers=headers)

        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"] == []

    def test_missing_line_is_404(self, client, customer, product, auth_headers):
        resp = client.patch(f"/api/cart/items/{product.id}", json={"quantity": 1}, headers=auth_headers(customer))

        assert resp.status_code == 404


class TestRemoveAndClear:
    def test_remove_line(self, client, customer, product, auth_headers):
        headers = auth_headers(customer)
        add(client, headers, product)

        resp = client.delete(f"/api/cart/items/{product.id}", headers=headers)

        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"] == []

    def test_remove_missing_line_is_404(self, client, customer, product, auth_headers):
        resp = client.delete(f"/api/cart/items/{product.id}", headers=auth_headers(customer))

        assert resp.status_code == 404

    def test_clear_empties_the_cart(self, client, customer, make_product, auth_headers):
        headers = auth_headers(customer)
        add(client, headers, make_product())
        add(client, headers, make_product(sku="CAP-01", name="Cap", price=5000, category="accessory"))
        Cart._get_collection().update_one({"user": customer.id}, {"$set": {"memo": "gift"}})

        resp = client.delete("/api/cart", headers=headers)

        data = resp.get_json()["data"]
        assert resp.status_code == 200
        assert data["items"] == []
        assert data["memo"] is None
        assert data["totalAmount"] == 0

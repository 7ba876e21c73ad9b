"""Tests for the product catalog endpoints."""

from bson import ObjectId

from Models.productModel import Product

NEW_PRODUCT = {
    "sku": "pants-01",
    "name": "Wide Pants",
    "price": 39000,
    "category": "bottom",
    "image": "https://img.example/pants.png",
    "description": "Relaxed fit",
}


class TestCatalog:
    def test_list_is_public_and_paginated(self, client, make_product):
        for n in range(5):
            make_product(sku=f"TEE-{n}", name=f"Tee {n}")

        resp = client.get("/api/products?page=2&limit=2")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["count"] == 2
        assert body["pagination"]["page"] == 2
        assert body["pagination"]["totalPages"] == 3
        assert body["pagination"]["totalItems"] == 5
        assert body["pagination"]["hasNextPage"] is True
        assert body["pagination"]["hasPrevPage"] is True

    def test_keyword_search(self, client, make_product):
        make_product(sku="TEE-1", name="Striped Tee")
        make_product(sku="CAP-1", name="Ball Cap", category="accessory")

        body = client.get("/api/products?keyword=cap").get_json()

        assert [p["sku"] for p in body["data"]] == ["CAP-1"]
        assert body["pagination"]["keyword"] == "cap"

    def test_get_one(self, client, product):
        resp = client.get(f"/api/products/{product.id}")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["sku"] == "TEE-001"

    def test_get_unknown_or_malformed_is_404(self, client, app):
        assert client.get(f"/api/products/{ObjectId()}").status_code == 404
        assert client.get("/api/products/not-an-id").status_code == 404


class TestManagement:
    def test_admin_creates_product(self, client, admin, auth_headers):
        resp = client.post("/api/products", json=NEW_PRODUCT, headers=auth_headers(admin))

        assert resp.status_code == 201
        assert resp.get_json()["data"]["sku"] == "PANTS-01"
        assert Product.objects(sku="PANTS-01").count() == 1

    def test_customer_cannot_create(self, client, customer, auth_headers):
        resp = client.post("/api/products", json=NEW_PRODUCT, headers=auth_headers(customer))

        assert resp.status_code == 403

    def test_duplicate_sku_is_409(self, client, admin, auth_headers, make_product):
        make_product(sku="PANTS-01")

        resp = client.post("/api/products", json=NEW_PRODUCT, headers=auth_headers(admin))

        assert resp.status_code == 409

    def test_missing_fields_are_400(self, client, admin, auth_headers):
        resp = client.post("/api/products", json={"sku": "X-1"}, headers=auth_headers(admin))

        assert resp.status_code == 400
        assert "name" in resp.get_json()["message"]

    def test_unknown_category_is_400(self, client, admin, auth_headers):
        resp = client.post("/api/products", json=dict(NEW_PRODUCT, category="hats"), headers=auth_headers(admin))

        assert resp.status_code == 400

    def test_update_and_delete(self, client, admin, auth_headers, product):
        headers = auth_headers(admin)

        updated = client.put(f"/api/products/{product.id}", json={"price": 12000}, headers=headers)
        deleted = client.delete(f"/api/products/{product.id}", headers=headers)

        assert updated.get_json()["data"]["price"] == 12000
        assert deleted.status_code == 200
        assert Product.objects.count() == 0

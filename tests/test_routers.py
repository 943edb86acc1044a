from datetime import timedelta

from Product_module.Product_model import ProductVariant

from conftest import NOW


def line(product, size="M", quantity=1):
    return {"product": product.id, "size": size, "quantity": quantity}


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_price_endpoint_returns_pricing_shape(client, make_product, make_offer, make_coupon):
    product = make_product(price=1000)
    make_offer(product, value=10)
    make_coupon()

    response = client.post("/orders/price", json={"items": [line(product, quantity=2)], "coupon_code": "save10"})

    assert response.status_code == 200
    body = response.json()
    assert body["subtotal"] == 1800.0
    assert body["discountAmount"] == 100.0
    assert body["totalAmount"] == 1750.0
    assert body["couponDetails"]["code"] == "SAVE10"


def test_price_endpoint_maps_service_errors(client, make_product):
    product = make_product()

    missing_size = client.post("/orders/price", json={"items": [line(product, size="XS")]})
    assert missing_size.status_code == 404
    assert missing_size.json()["detail"]["code"] == "variant_not_found"

    bad_coupon = client.post("/orders/price", json={"items": [line(product)], "coupon_code": "NOPE"})
    assert bad_coupon.status_code == 404
    assert bad_coupon.json()["detail"]["code"] == "coupon_not_found"

    empty = client.post("/orders/price", json={"items": []})
    assert empty.status_code == 400
    assert empty.json()["detail"]["code"] == "invalid_line_item"


def test_zero_quantity_is_a_validation_error(client, make_product):
    product = make_product()
    response = client.post("/orders/price", json={"items": [line(product, quantity=0)]})
    assert response.status_code == 422
    assert response.json()["status"] == "error"


def test_order_lifecycle_over_http(client, db, customer, make_product):
    user, address = customer
    product = make_product(price=500, stock=4)

    placed = client.post("/orders", json={
        "user_id": user.id,
        "address_id": address.id,
        "items": [line(product, quantity=2)],
        "payment_method": "razorpay",
    })
    assert placed.status_code == 201
    order = placed.json()["data"]
    assert order["totalAmount"] == 1050.0

    too_short = client.post(f"/orders/{order['orderId']}/cancel", json={"reason": "too big"})
    assert too_short.status_code == 400
    assert too_short.json()["detail"]["code"] == "invalid_reason"

    cancelled = client.post(f"/orders/{order['orderId']}/cancel", json={"reason": "wrong size"})
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "CANCELED"

    again = client.post(f"/orders/{order['orderId']}/cancel", json={"reason": "wrong size"})
    assert again.status_code == 409

    wallet = client.get(f"/wallet/{user.id}").json()["data"]
    assert wallet["currentBalance"] == 1050.0
    assert wallet["transactions"][0]["type"] == "cancelled"

    db.expire_all()
    assert db.query(ProductVariant).filter(ProductVariant.product_id == product.id).one().stock == 4


def test_return_flow_over_http(client, customer, make_product):
    user, address = customer
    product = make_product(price=800)
    order_id = client.post("/orders", json={
        "user_id": user.id,
        "address_id": address.id,
        "items": [line(product)],
        "payment_method": "cod",
    }).json()["data"]["orderId"]

    for status in ("CONFIRMED", "ON THE ROAD", "DELIVERED"):
        assert client.put(f"/orders/{order_id}/status", json={"status": status}).status_code == 200

    returned = client.post(f"/orders/{order_id}/return", json={
        "user_id": user.id, "product_id": product.id, "reason": "stitching came loose"
    })
    assert returned.status_code == 200

    requests = client.get("/orders/admin/returns").json()["data"]
    assert requests[0]["orderId"] == order_id

    approved = client.post(f"/orders/{order_id}/return/approve", json={"product_id": product.id})
    assert approved.status_code == 200
    assert approved.json()["refundAmount"] == 800.0

    twice = client.post(f"/orders/{order_id}/return/approve", json={"product_id": product.id})
    assert twice.status_code == 409
    assert twice.json()["detail"]["code"] == "already_approved"

    rated = client.post(f"/orders/{order_id}/rating", json={"user_id": user.id, "rating": 4})
    assert rated.json()["rating"] == 4


def test_invalid_status_change_is_a_conflict(client, customer, make_product):
    user, address = customer
    order_id = client.post("/orders", json={
        "user_id": user.id,
        "address_id": address.id,
        "items": [line(make_product())],
        "payment_method": "cod",
    }).json()["data"]["orderId"]

    response = client.put(f"/orders/{order_id}/status", json={"status": "DELIVERED"})
    assert response.status_code == 409


def test_user_orders_and_missing_order(client, customer, make_product):
    user, address = customer
    client.post("/orders", json={
        "user_id": user.id,
        "address_id": address.id,
        "items": [line(make_product())],
        "payment_method": "cod",
    })

    assert len(client.get(f"/orders/user/{user.id}").json()["data"]) == 1
    assert client.get("/orders/424242").status_code == 404


def test_offer_admin_endpoints(client, make_product):
    product = make_product()
    payload = {
        "name": "Monsoon sale",
        "discount_type": "PERCENTAGE",
        "discount_value": 20,
        "max_discount_amount": 150,
        "start_date": (NOW + timedelta(days=1)).isoformat(),
        "end_date": (NOW + timedelta(days=8)).isoformat(),
        "applicable_to": "product",
        "target_id": product.id,
    }

    created = client.post("/offers", json=payload)
    assert created.status_code == 201
    offer_id = created.json()["data"]["id"]

    overlap = client.post("/offers", json=payload)
    assert overlap.status_code == 409
    assert overlap.json()["detail"]["code"] == "offer_overlap"

    assert len(client.get("/offers").json()["data"]) == 1
    assert client.delete(f"/offers/{offer_id}").status_code == 200
    assert client.delete(f"/offers/{offer_id}").status_code == 404


def test_offer_schema_rejects_large_percentage(client, make_product):
    response = client.post("/offers", json={
        "name": "Too generous",
        "discount_type": "PERCENTAGE",
        "discount_value": 150,
        "start_date": (NOW + timedelta(days=1)).isoformat(),
        "end_date": (NOW + timedelta(days=2)).isoformat(),
        "applicable_to": "product",
        "target_id": make_product().id,
    })
    assert response.status_code == 422


def test_coupon_endpoints(client):
    created = client.post("/coupons", json={
        "code": "festive",
        "discount": 15,
        "start_date": NOW.isoformat(),
        "expiry_date": (NOW + timedelta(days=10)).isoformat(),
        "minimum_purchase_amount": 1000,
        "maximum_discount_amount": 200,
        "max_uses": 100,
    })
    assert created.status_code == 201
    assert created.json()["data"]["code"] == "FESTIVE"

    duplicate = client.post("/coupons", json={
        "code": "FESTIVE",
        "discount": 5,
        "start_date": NOW.isoformat(),
        "expiry_date": (NOW + timedelta(days=10)).isoformat(),
        "minimum_purchase_amount": 100,
        "maximum_discount_amount": 10,
    })
    assert duplicate.status_code == 409

    available = client.get("/coupons/available", params={"orderAmount": 1500}).json()["data"]
    assert [c["code"] for c in available] == ["FESTIVE"]

    checked = client.post("/coupons/validate", json={"coupon_code": "festive", "subtotal": 2000})
    assert checked.json()["data"]["discountAmount"] == 200.0
    # Checking does not consume a use
    assert client.get("/coupons").json()["data"][0]["usageCount"] == 0


def test_catalog_lists_effective_prices(client, make_category, make_product, make_offer):
    active = make_category(is_active=True)
    hidden = make_category(is_active=False)
    on_sale = make_product(price=1000, category=active, name="Kurta")
    make_product(price=700, category=hidden, name="Hidden tee")
    make_offer(active, value=20)

    listing = client.get("/products/viewProduct").json()["data"]

    assert [p["name"] for p in listing] == ["Kurta"]
    assert listing[0]["variants"][0]["finalPrice"] == 800.0

    detail = client.get(f"/products/detail/{on_sale.id}").json()["data"]
    assert detail["offer"]["discountValue"] == 20.0
    # Detail and listing describe a product the same way
    assert detail == listing[0]

    assert client.delete(f"/products/{on_sale.id}").status_code == 200
    assert client.get(f"/products/detail/{on_sale.id}").status_code == 400
    assert client.get("/products/viewProduct").json()["data"] == []

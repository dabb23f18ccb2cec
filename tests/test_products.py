PRODUCT = {
    "name": "Test Product",
    "description": "Test Description",
    "price": 10.0,
    "category": "Test Category",
    "quantity": 5,
}


def test_create_product(client):
    response = client.post("/products", json=PRODUCT)
    assert response.status_code == 201
    assert response.json() == {"message": "Product created successfully!"}


def test_create_product_validation(client):
    response = client.post("/products", json=dict(PRODUCT, price=0, description=None))
    assert response.status_code == 400
    assert response.json() == {"error": "description is required; price must be greater than 0"}


def test_list_products(client, product):
    response = client.get("/products")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [product.id]


def test_list_products_empty(client):
    response = client.get("/products")
    assert response.status_code == 404
    assert response.json() == {"message": "Products not found"}


def test_get_product(client, product):
    body = client.get(f"/products/{product.id}").json()
    assert body["name"] == "Test Product"
    assert body["created_at"]

    assert client.get("/products/404").json() == {"error": "Product not found"}
    assert client.get("/products/x").json() == {"error": "Invalid product ID"}


def test_update_product_is_partial(client, product):
    response = client.put(f"/products/{product.id}", json={"price": 20.0, "quantity": 0})
    assert response.status_code == 200
    assert response.json() == {"message": "Product updated successfully!"}

    body = client.get(f"/products/{product.id}").json()
    assert body["price"] == 20.0
    assert body["quantity"] == 0
    assert body["category"] == "Test Category"


def test_update_product_validation(client, product):
    response = client.put(f"/products/{product.id}", json={"quantity": -3})
    assert response.status_code == 400
    assert response.json() == {"error": "quantity must be greater than or equal to 0"}


def test_delete_product(client, product):
    response = client.delete(f"/products/{product.id}")
    assert response.json() == {"message": "Product deleted successfully!"}
    assert client.get(f"/products/{product.id}").status_code == 404


def test_search_products_by_category(client):
    client.post("/products", json=PRODUCT)

    response = client.get("/products/search/category/Test")
    assert response.status_code == 200
    assert [p["category"] for p in response.json()] == ["Test Category"]


def test_search_products_by_name(client, product):
    response = client.get("/products/search/test product")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [product.id]

    response = client.get("/products/search/lamp")
    assert response.status_code == 404
    assert response.json() == {"message": "Products not found"}

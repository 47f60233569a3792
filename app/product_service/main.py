# product_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Product Service (dev mock)")


PRODUCTS = {
    1: {
        "id": 1, "owner_id": 1, "title": "Tractor", "price": 450000.00,
        "rental_price": 2500.00, "is_active": True, "is_available": True, "stock": 1,
    },
    2: {
        "id": 2, "owner_id": 1, "title": "Seed drill", "price": 38000.00,
        "rental_price": 600.00, "is_active": True, "is_available": True, "stock": 2,
    },
    3: {
        "id": 3, "owner_id": 2, "title": "Organic fertilizer 25kg", "price": 899.00,
        "rental_price": None, "is_active": True, "is_available": True, "stock": 40,
    },
}


@app.get("/products/{product_id}")
def get_product(product_id: int):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

"""
Error kinds surfaced to API clients.

Each carries the HTTP status it maps to; main.py turns them into
``{"message": ...}`` JSON bodies.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(StoreError):
    status_code = 400


class ProductNotFound(StoreError):
    status_code = 400

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class InvalidQuantity(StoreError):
    status_code = 400

    def __init__(self, product_name: str):
        super().__init__(f"Invalid quantity for product {product_name}")
        self.product_name = product_name


class InsufficientStock(StoreError):
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Available {available}, requested {requested}"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class Unauthenticated(StoreError):
    status_code = 401


class InvalidCredentials(StoreError):
    status_code = 401

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class NotFound(StoreError):
    status_code = 404


class InternalFailure(StoreError):
    status_code = 500

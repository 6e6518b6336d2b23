from commerce.api.errors import register_error_handlers
from commerce.api.routes import admin_router, cart_router, order_router

__all__ = ["admin_router", "cart_router", "order_router", "register_error_handlers"]

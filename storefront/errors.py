"""
Taxonomie des erreurs métier du checkout.
- ValidationError (400): panier vide, produit introuvable, rupture, taille invalide.
- PaymentNotCompletedError (400): la session existe mais n'est pas payée.
- SessionNotFoundError / UpstreamServiceError (500): détail journalisé, jamais exposé.
Les handlers FastAPI (app_setup.exceptions) rendent chaque erreur en {"error": message}.
"""


class CheckoutError(Exception):
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CheckoutError):
    status_code = 400
    default_message = "Invalid request"


class EmptyCartError(ValidationError):
    default_message = "Cart is empty"


class NotFoundError(ValidationError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class SoldOutError(ValidationError):
    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"{product_name} is sold out")


class InvalidSizeError(ValidationError):
    def __init__(self, product_name: str, size: str):
        self.product_name = product_name
        self.size = size
        super().__init__(f"Invalid size for {product_name}: {size}")


class PaymentNotCompletedError(CheckoutError):
    status_code = 400
    default_message = "Payment not completed"

    def __init__(self, payment_status: str = ""):
        self.payment_status = payment_status
        super().__init__()


class SessionNotFoundError(CheckoutError):
    status_code = 500
    default_message = "Checkout session not found"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Checkout session not found: {session_id}")


class UpstreamServiceError(CheckoutError):
    status_code = 500
    default_message = "Upstream service failure"


class GatewayError(UpstreamServiceError):
    default_message = "Payment gateway failure"

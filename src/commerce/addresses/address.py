"""Address aggregate: a customer's saved shipping destination."""

from protean.fields import Identifier, String

from commerce.domain import commerce


@commerce.aggregate
class Address:
    customer_id = Identifier(required=True)
    recipient = String(required=True, max_length=255)
    phone = String(max_length=30)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    country = String(required=True, max_length=100)

    def belongs_to(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    def to_snapshot(self) -> dict:
        return {
            "address_id": str(self.id),
            "recipient": self.recipient,
            "phone": self.phone,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "country": self.country,
        }

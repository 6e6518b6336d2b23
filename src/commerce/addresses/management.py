"""Address book commands."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.addresses.address import Address
from commerce.domain import commerce


@commerce.command(part_of="Address")
class RegisterAddress:
    address_id = Identifier()
    customer_id = Identifier(required=True)
    recipient = String(required=True, max_length=255)
    phone = String(max_length=30)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    country = String(required=True, max_length=100)


@commerce.command_handler(part_of=Address)
class AddressBookHandler:
    @handle(RegisterAddress)
    def register_address(self, command):
        values = dict(
            customer_id=command.customer_id,
            recipient=command.recipient,
            phone=command.phone,
            street=command.street,
            city=command.city,
            state=command.state,
            country=command.country,
        )
        if command.address_id:
            values["id"] = command.address_id
        address = Address(**values)
        current_domain.repository_for(Address).add(address)
        return str(address.id)

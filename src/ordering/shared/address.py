"""Postal address value object used for cart and order shipping."""

import re
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from ordering.domain import ordering

_PINCODE = re.compile(r"^[0-9]{6}$")


class AddressLabel(Enum):
    HOME = "home"
    WORK = "work"
    OTHER = "other"


@ordering.value_object
class Address:
    """A delivery address, copied onto an order at checkout and never edited there."""

    label = String(choices=AddressLabel, default=AddressLabel.HOME.value)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    pincode = String(required=True, max_length=6)
    country = String(max_length=100, default="India")

    @invariant.post
    def pincode_must_have_six_digits(self):
        if not _PINCODE.match(self.pincode or ""):
            raise ValidationError({"pincode": ["Pincode must be exactly 6 digits"]})

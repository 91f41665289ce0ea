"""Cart request forms."""
from wtforms import IntegerField
from wtforms.validators import DataRequired, NumberRange

from pharmastore.forms import JsonForm


class CartItemForm(JsonForm):
    """POST /items body: {productId, quantity}."""

    product_id = IntegerField(
        'Product',
        name='productId',
        validators=[DataRequired(message='Product ID is required')]
    )

    quantity = IntegerField(
        'Quantity',
        default=1,
        validators=[NumberRange(min=1, message='Quantity must be at least 1')]
    )


class CartItemUpdateForm(JsonForm):
    """PUT /items/<id> body: {quantity}. Zero removes the item."""

    quantity = IntegerField(
        'Quantity',
        validators=[NumberRange(min=0, message='Quantity cannot be negative')]
    )

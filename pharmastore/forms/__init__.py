"""
Request forms.

Forms are bound to JSON bodies (Flask-WTF reads request.get_json() for JSON
requests). Field names use the camelCase keys of the API.
"""
from flask_wtf import FlaskForm

from pharmastore.exceptions import ValidationError


class JsonForm(FlaskForm):
    """Base for API forms. Session CSRF tokens do not apply to JSON clients."""

    class Meta:
        csrf = False


def load_form(form_class):
    """Instantiate form_class from the current request or raise ValidationError."""
    form = form_class()
    if not form.validate_on_submit():
        # Report errors under the JSON keys the client sent
        errors = {form[key].name: messages for key, messages in form.errors.items()}
        raise ValidationError('Invalid request', errors=errors)
    return form


from pharmastore.forms.cart_forms import CartItemForm, CartItemUpdateForm  # noqa: E402
from pharmastore.forms.order_forms import (  # noqa: E402
    OrderCreateForm, OrderStatusUpdateForm, OrderCancelForm, TrackingUpdateForm, RestockForm
)
from pharmastore.forms.payment_forms import PaymentInitForm, RefundForm  # noqa: E402

__all__ = [
    'JsonForm', 'load_form',
    'CartItemForm', 'CartItemUpdateForm',
    'OrderCreateForm', 'OrderStatusUpdateForm', 'OrderCancelForm', 'TrackingUpdateForm', 'RestockForm',
    'PaymentInitForm', 'RefundForm',
]

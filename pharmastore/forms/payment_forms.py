"""Payment request forms."""
from wtforms import BooleanField, DecimalField, IntegerField, StringField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from pharmastore.forms import JsonForm


class PaymentInitForm(JsonForm):
    order_id = IntegerField(
        'Order',
        name='orderId',
        validators=[DataRequired(message='Order ID is required')]
    )


class RefundForm(JsonForm):
    """Full refund, or partial refund of amount."""

    payment_id = IntegerField(
        'Payment',
        name='paymentId',
        validators=[DataRequired(message='Payment ID is required')]
    )

    amount = DecimalField(
        'Amount',
        places=2,
        validators=[Optional(), NumberRange(min=0.01, message='Refund amount must be greater than 0')]
    )

    full_refund = BooleanField('Full refund', name='fullRefund', default=False)

    reason = StringField('Reason', validators=[Optional(), Length(max=500)])

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators):
            return False
        if not self.full_refund.data and self.amount.data is None:
            self.amount.errors.append('Amount is required for a partial refund')
            return False
        return True

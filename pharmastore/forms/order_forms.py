"""Order and stock request forms."""
from wtforms import IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from pharmastore.forms import JsonForm
from pharmastore.models import DeliveryType, OrderStatus


class OrderCreateForm(JsonForm):
    """Checkout body."""

    pharmacy_id = IntegerField(
        'Pharmacy',
        name='pharmacyId',
        validators=[DataRequired(message='Pharmacy ID is required')]
    )

    delivery_type = SelectField(
        'Delivery type',
        name='deliveryType',
        choices=[(d.value, d.value) for d in DeliveryType],
        validators=[DataRequired(message='Delivery type is required')]
    )

    shipping_address = StringField(
        'Address',
        name='shippingAddress',
        validators=[DataRequired(message='Shipping address is required'), Length(max=500)]
    )

    shipping_city = StringField(
        'City',
        name='shippingCity',
        validators=[DataRequired(message='City is required'), Length(max=100)]
    )

    shipping_district = StringField(
        'District',
        name='shippingDistrict',
        validators=[DataRequired(message='District is required'), Length(max=100)]
    )

    shipping_postal_code = StringField('Postal code', name='shippingPostalCode', validators=[Optional(), Length(max=20)])

    shipping_phone = StringField(
        'Phone',
        name='shippingPhone',
        validators=[DataRequired(message='Phone number is required'), Length(max=20)]
    )

    notes = TextAreaField('Notes', validators=[Optional(), Length(max=500)])

    def shipping(self):
        return {
            'address': self.shipping_address.data,
            'city': self.shipping_city.data,
            'district': self.shipping_district.data,
            'postal_code': self.shipping_postal_code.data or None,
            'phone': self.shipping_phone.data,
        }


class OrderStatusUpdateForm(JsonForm):
    status = SelectField(
        'Status',
        choices=[(s.value, s.value) for s in OrderStatus],
        validators=[DataRequired(message='Status is required')]
    )
    tracking_number = StringField('Tracking number', name='trackingNumber', validators=[Optional(), Length(max=100)])
    cargo_company = StringField('Cargo company', name='cargoCompany', validators=[Optional(), Length(max=100)])
    note = StringField('Note', validators=[Optional(), Length(max=500)])


class OrderCancelForm(JsonForm):
    reason = StringField(
        'Reason',
        validators=[DataRequired(message='Cancellation reason is required'), Length(max=500)]
    )


class TrackingUpdateForm(JsonForm):
    tracking_number = StringField(
        'Tracking number',
        name='trackingNumber',
        validators=[DataRequired(message='Tracking number is required'), Length(max=100)]
    )
    cargo_company = StringField('Cargo company', name='cargoCompany', validators=[Optional(), Length(max=100)])


class RestockForm(JsonForm):
    quantity = IntegerField(
        'Quantity',
        validators=[NumberRange(min=1, message='Quantity must be at least 1')]
    )

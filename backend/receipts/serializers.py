from rest_framework import serializers

from .generator import ReceiptPayload
from .words import whole_rupees


class ReceiptPayloadSerializer(serializers.Serializer):
    date = serializers.CharField(max_length=50)
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0)
    received_from = serializers.CharField(max_length=200)
    payment_mode = serializers.CharField(max_length=50)
    place_of_supply = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    customer_address = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_amount(self, value):
        try:
            return whole_rupees(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e))

    def to_payload(self) -> ReceiptPayload:
        return ReceiptPayload(**self.validated_data)

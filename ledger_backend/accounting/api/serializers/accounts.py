# accounting/api/serializers/accounts.py

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from accounting.models.account import Account


class AccountSerializer(serializers.ModelSerializer):
    """
    Chart of accounts row.
    current_balance is a ledger-maintained cache and never writable.
    """

    class Meta:
        model = Account
        fields = (
            "id",
            "code",
            "name",
            "name_localized",
            "account_type",
            "subtype",
            "currency",
            "description",
            "current_balance",
            "is_active",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "current_balance", "created_at", "updated_at")

    def _save_with_model_validation(self, save):
        try:
            return save()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.message_dict if hasattr(exc, "message_dict") else exc.messages)

    def create(self, validated_data):
        return self._save_with_model_validation(lambda: super(AccountSerializer, self).create(validated_data))

    def update(self, instance, validated_data):
        return self._save_with_model_validation(
            lambda: super(AccountSerializer, self).update(instance, validated_data)
        )

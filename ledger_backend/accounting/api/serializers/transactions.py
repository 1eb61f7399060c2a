# accounting/api/serializers/transactions.py

"""
======================================================
PATH: accounting/api/serializers/transactions.py
======================================================
TRANSACTION SERIALIZERS

Output:
- TransactionSerializer (header + nested entries, read-only)

Input:
- TransactionCreateSerializer: shape check only; the domain rules
  (one side per line, balance, active accounts) are enforced by
  JournalEntryRequest and the ledger, so the API and the services
  can never disagree.
- Reverse / recurring / closing action payloads
"""

from rest_framework import serializers

from accounting.journal_request import JournalEntryRequest
from accounting.models.transaction import Transaction, TransactionEntry
from accounting.services.journal_entry_service import FREQUENCY_STEPS


class TransactionEntrySerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = TransactionEntry
        fields = (
            "id",
            "account",
            "account_code",
            "account_name",
            "debit_amount",
            "credit_amount",
            "original_debit_amount",
            "original_credit_amount",
            "currency",
            "exchange_rate",
            "description",
            "description_localized",
            "metadata",
        )
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    entries = TransactionEntrySerializer(many=True, read_only=True)

    class Meta:
        model = Transaction
        fields = (
            "id",
            "reference_number",
            "description",
            "description_localized",
            "transaction_date",
            "transaction_type",
            "source_type",
            "source_id",
            "total_amount",
            "currency",
            "exchange_rate",
            "cost_center_id",
            "tags",
            "notes",
            "approval_status",
            "created_by",
            "approved_by",
            "approved_at",
            "created_at",
            "entries",
        )
        read_only_fields = fields


class EntryLineInputSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    debit_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)
    credit_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)
    currency = serializers.CharField(required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    description_localized = serializers.CharField(required=False, allow_blank=True, default="")
    cost_center_id = serializers.IntegerField(required=False, allow_null=True)
    project_id = serializers.IntegerField(required=False, allow_null=True)
    department_id = serializers.IntegerField(required=False, allow_null=True)
    tax_code = serializers.CharField(required=False, allow_blank=True)
    custom_fields = serializers.JSONField(required=False)


class TaxEntryInputSerializer(serializers.Serializer):
    tax_code = serializers.CharField()
    taxable_amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    tax_account_id = serializers.IntegerField()
    is_tax_debit = serializers.BooleanField(required=False, default=False)
    currency = serializers.CharField(required=False, allow_blank=True, default="")


class TransactionCreateSerializer(serializers.Serializer):
    description = serializers.CharField()
    description_localized = serializers.CharField(required=False, allow_blank=True, default="")
    transaction_date = serializers.DateField()
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    source_type = serializers.CharField(required=False, allow_blank=True, default="")
    source_id = serializers.CharField(required=False, allow_blank=True, default="")
    cost_center_id = serializers.IntegerField(required=False, allow_null=True)
    tags = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    requires_approval = serializers.BooleanField(required=False, default=False)
    entries = EntryLineInputSerializer(many=True)
    tax_entries = TaxEntryInputSerializer(many=True, required=False, default=list)

    def to_request(self) -> JournalEntryRequest:
        """Raises TransactionValidationError for domain-level problems."""
        return JournalEntryRequest.from_raw(dict(self.validated_data))


class ReverseTransactionSerializer(serializers.Serializer):
    reversing_date = serializers.DateField()
    description = serializers.CharField(required=False, allow_blank=True)


class RecurringEntrySerializer(TransactionCreateSerializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    frequency = serializers.ChoiceField(choices=sorted(FREQUENCY_STEPS))
    reference_prefix = serializers.CharField(required=False, allow_blank=True, default="REC", max_length=40)
    all_or_nothing = serializers.BooleanField(required=False, default=False)

    # transaction_date is taken from each scheduled occurrence
    transaction_date = serializers.DateField(required=False)

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be >= start_date"})
        attrs.setdefault("transaction_date", attrs["start_date"])
        return attrs


class ClosingEntriesSerializer(serializers.Serializer):
    period_end = serializers.DateField()


def batch_result_payload(result) -> dict:
    return {
        "created": TransactionSerializer(result.created, many=True).data,
        "failures": [{"label": f.label, "error": f.error} for f in result.failures],
        "skipped": list(result.skipped),
        "ok": result.ok,
    }

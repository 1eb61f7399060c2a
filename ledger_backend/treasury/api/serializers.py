# treasury/api/serializers.py

from rest_framework import serializers


class BankStatementLineSerializer(serializers.Serializer):
    date = serializers.DateField()
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    reference = serializers.CharField(required=False, allow_blank=True, default="")


class BankReconciliationSerializer(serializers.Serializer):
    account_id = serializers.IntegerField(min_value=1)
    statement_date = serializers.DateField()
    ending_balance = serializers.DecimalField(max_digits=18, decimal_places=2)
    transactions = BankStatementLineSerializer(many=True, required=False, default=list)

    def statement(self) -> dict:
        data = self.validated_data
        return {
            "ending_balance": data["ending_balance"],
            "transactions": [dict(line) for line in data.get("transactions") or []],
        }

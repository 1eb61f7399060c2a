# budgeting/api/serializers.py

"""
BUDGET SERIALIZERS

Output: BudgetSerializer (header + nested lines, read-only)
Input:  create / revision / history-generation payloads. Totals are never
        accepted from the client; lines always sum their months.
"""

from rest_framework import serializers

from budgeting.models.budget import MONTH_FIELDS, Budget, BudgetLine


def _month_field():
    return serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default="0.00")


class BudgetLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = BudgetLine
        fields = (
            "id",
            "account",
            "account_code",
            "account_name",
            "category",
            "subcategory",
            "cost_center_id",
            "department_id",
            *MONTH_FIELDS,
            "total_budget",
            "notes",
            "is_active",
        )
        read_only_fields = fields


class BudgetSerializer(serializers.ModelSerializer):
    lines = BudgetLineSerializer(many=True, read_only=True)

    class Meta:
        model = Budget
        fields = (
            "id",
            "name",
            "name_localized",
            "description",
            "budget_year",
            "start_date",
            "end_date",
            "status",
            "currency",
            "parent_budget",
            "revision_number",
            "created_by",
            "approved_by",
            "approved_at",
            "created_at",
            "lines",
        )
        read_only_fields = fields


class BudgetLineInputSerializer(serializers.Serializer):
    account_id = serializers.IntegerField(min_value=1)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True)
    subcategory = serializers.CharField(max_length=50, required=False, allow_blank=True)
    cost_center_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    department_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    notes = serializers.CharField(required=False, allow_blank=True)

    january = _month_field()
    february = _month_field()
    march = _month_field()
    april = _month_field()
    may = _month_field()
    june = _month_field()
    july = _month_field()
    august = _month_field()
    september = _month_field()
    october = _month_field()
    november = _month_field()
    december = _month_field()


class BudgetCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    name_localized = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    budget_year = serializers.IntegerField(min_value=1900, max_value=9999)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    currency = serializers.CharField(max_length=3, required=False)
    lines = BudgetLineInputSerializer(many=True, required=False, default=list)

    def validate(self, attrs):
        if attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be >= start_date"})
        return attrs


class BudgetRevisionSerializer(serializers.Serializer):
    reason = serializers.CharField()
    revisions = serializers.DictField(child=serializers.DictField(), required=False, default=dict)


class BudgetFromHistorySerializer(serializers.Serializer):
    base_year = serializers.IntegerField(min_value=1900, max_value=9999)
    target_year = serializers.IntegerField(min_value=1900, max_value=9999)
    growth_rate = serializers.DecimalField(max_digits=7, decimal_places=2, required=False, default="0")

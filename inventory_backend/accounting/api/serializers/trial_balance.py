# accounting/api/serializers/trial_balance.py

from rest_framework import serializers


class TrialBalanceRowSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    account_code = serializers.CharField()
    account_name = serializers.CharField()
    account_type = serializers.CharField()
    debit = serializers.DecimalField(max_digits=16, decimal_places=2)
    credit = serializers.DecimalField(max_digits=16, decimal_places=2)
    balance = serializers.DecimalField(max_digits=16, decimal_places=2)


class TrialBalanceTotalsSerializer(serializers.Serializer):
    debit = serializers.DecimalField(max_digits=16, decimal_places=2)
    credit = serializers.DecimalField(max_digits=16, decimal_places=2)
    balanced = serializers.BooleanField()


class TrialBalanceSerializer(serializers.Serializer):
    as_of = serializers.DateTimeField()
    accounts = TrialBalanceRowSerializer(many=True)
    totals = TrialBalanceTotalsSerializer()

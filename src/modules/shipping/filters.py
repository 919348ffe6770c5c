import django_filters

from modules.shipping.models import DeliveryRule


class DeliveryRuleFilter(django_filters.FilterSet):
    country = django_filters.CharFilter(field_name="country", lookup_expr="iexact")
    is_active = django_filters.BooleanFilter(field_name="is_active")
    pieces = django_filters.NumberFilter(method="filter_pieces")

    class Meta:
        model = DeliveryRule
        fields = ["country", "is_active", "pieces"]

    def filter_pieces(self, queryset, name, value):
        return queryset.filter(min_pieces__lte=value, max_pieces__gte=value)

import django_filters

from storefront.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    payment_status = django_filters.CharFilter(
        field_name="payment_status", lookup_expr="iexact"
    )
    fulfillment_type = django_filters.CharFilter(
        field_name="fulfillment_type", lookup_expr="iexact"
    )
    customer_email = django_filters.CharFilter(
        field_name="customer_email", lookup_expr="iexact"
    )
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "payment_status",
            "fulfillment_type",
            "customer_email",
            "start_date",
            "end_date",
        ]

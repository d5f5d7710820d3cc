import django_filters
from django.db.models import Q, TextField
from django.db.models.functions import Cast

from apps.audit.models import AuditLog
from core.constants import AuditActions

SEARCH_MAX_LENGTH = 200
ENTITY_MAX_LENGTH = 100


class CharInFilter(django_filters.BaseInFilter, django_filters.CharFilter):
    pass


class AuditLogFilter(django_filters.FilterSet):
    """
    Filtering for audit entries.
    Used by the query service and the API.
    """

    # ==========================
    # CORE FILTERS
    # ==========================

    actor = django_filters.NumberFilter(field_name="actor_id")

    action = django_filters.MultipleChoiceFilter(
        field_name="action",
        choices=AuditActions.choices,
    )

    target_entity = CharInFilter(
        field_name="target_entity",
        lookup_expr="in",
        max_length=ENTITY_MAX_LENGTH,
        help_text="One or more entity labels, comma separated",
    )

    target_id = django_filters.CharFilter(
        field_name="target_id",
        lookup_expr="exact",
        max_length=255,
    )

    # ==========================
    # DATE RANGE FILTERS
    # ==========================

    start_date = django_filters.IsoDateTimeFilter(
        field_name="timestamp",
        lookup_expr="gte",
        label="From datetime",
    )

    end_date = django_filters.IsoDateTimeFilter(
        field_name="timestamp",
        lookup_expr="lte",
        label="To datetime",
    )

    # ==========================
    # FULL TEXT SEARCH
    # ==========================

    q = django_filters.CharFilter(method="filter_search", max_length=SEARCH_MAX_LENGTH)

    class Meta:
        model = AuditLog
        fields = [
            "actor",
            "action",
            "target_entity",
            "target_id",
        ]

    def filter_search(self, queryset, name, value):
        """
        Free-text search across a fixed set of columns.
        """
        value = value.strip()
        if not value:
            return queryset

        return queryset.annotate(
            before_text=Cast("before_state", TextField()),
            after_text=Cast("after_state", TextField()),
        ).filter(
            Q(actor__email__icontains=value)
            | Q(actor__full_name__icontains=value)
            | Q(ip_address__icontains=value)
            | Q(target_entity__icontains=value)
            | Q(target_id__icontains=value)
            | Q(before_text__icontains=value)
            | Q(after_text__icontains=value)
        )

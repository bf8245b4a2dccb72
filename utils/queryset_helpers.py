class FilterableQuerysetMixin:
    """
    Filters the queryset by query parameters named in filter_fields,
    e.g. ?train_type=Rajdhani or ?payment_status=Completed.
    """

    def get_queryset(self):
        qs = super().get_queryset()
        for field in getattr(self, 'filter_fields', []):
            value = self.request.query_params.get(field)
            if value:
                qs = qs.filter(**{f"{field}__iexact": value})
        return qs


class UserSpecificQuerysetMixin:
    """
    Limits the queryset to rows owned by the caller; staff see every row.
    The owner lookup is user_field, e.g. "booking__user" for payments.
    """

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user

        if user.is_staff or user.is_superuser:
            return qs

        user_field = getattr(self, 'user_field', 'user')
        return qs.filter(**{user_field: user})


class OrderedQuerysetMixin:
    """
    Applies default_ordering, newest first unless a view says otherwise.
    """

    def get_queryset(self):
        qs = super().get_queryset()
        ordering = getattr(self, 'default_ordering', ['-created_at'])
        return qs.order_by(*ordering)


class UserFilterableQuerysetMixin(UserSpecificQuerysetMixin, FilterableQuerysetMixin, OrderedQuerysetMixin):
    """
    Combined mixin for user-specific views with filtering and ordering.
    """

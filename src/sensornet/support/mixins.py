import threading


def quote(val):
    return "'" + str(val) + "'" if val is not None else "None"


class StringerMixin:
    """
    outputs the class name and the object dictionary in key sorted order.
    Private attributes (leading underscore) are left out, since these are typically locks and caches.
    """

    def __str__(self):
        return type(self).__name__ + ':' + self._sorted_items_string()

    def _sorted_items_string(self):
        return "{" + ", ".join([("'" + str(key)) + "'" + ": " + (quote(val))
                                for key, val in sorted(self.__dict__.items())
                                if not key.startswith('_')]) + "}"


class CommonEqualityMixin(object):
    """  a deep equals comparison for value objects.
    Only public attributes take part, so instances holding their own lock still compare by value.
    """
    local = threading.local()

    def __eq__(self, other):
        if not hasattr(CommonEqualityMixin.local, 'seen'):
            CommonEqualityMixin.local.seen = []
        seen = CommonEqualityMixin.local.seen
        return hasattr(other, '__dict__') and isinstance(other, self.__class__) \
            and self._dicts_equal(other, seen)

    def _dicts_equal(self, other, seen):
        p = (id(self), id(other))
        if p in seen:
            raise ValueError("recursive call %s" % (p,))

        d1 = public_items(self)
        d2 = public_items(other)
        try:
            seen.append(p)
            result = d1 == d2
        finally:
            seen.pop()
        return result

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None


def public_items(o):
    return {k: v for k, v in o.__dict__.items() if not k.startswith('_')}

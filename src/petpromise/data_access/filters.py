from dataclasses import dataclass, field
from functools import reduce
from typing import Any

from boto3.dynamodb.conditions import Attr


@dataclass(frozen=True)
class Filter:
    """
    Conjunction of equality, inequality and case-insensitive substring
    predicates. The same filter narrows a DynamoDB scan server-side and is
    re-checked in Python, since DynamoDB ``contains`` is case-sensitive.
    """
    equals: dict[str, Any] = field(default_factory=dict)
    not_equals: dict[str, Any] = field(default_factory=dict)
    contains: dict[str, str] = field(default_factory=dict)

    def to_condition(self):
        conditions = [Attr(k).eq(v) for k, v in self.equals.items()]
        conditions += [Attr(k).ne(v) for k, v in self.not_equals.items()]
        if not conditions:
            return None
        return reduce(lambda left, right: left & right, conditions)

    def matches(self, item: dict) -> bool:
        for key, value in self.equals.items():
            if item.get(key) != value:
                return False
        for key, value in self.not_equals.items():
            if item.get(key) == value:
                return False
        for key, needle in self.contains.items():
            haystack = item.get(key)
            if not isinstance(haystack, str) or needle.lower() not in haystack.lower():
                return False
        return True

    def merged(self, other: "Filter") -> "Filter":
        return Filter(
            equals={**self.equals, **other.equals},
            not_equals={**self.not_equals, **other.not_equals},
            contains={**self.contains, **other.contains},
        )


def only_owner(email: str, field_name: str = "ownerEmail") -> Filter:
    return Filter(equals={field_name: email})


def exclude_owner(email: str, field_name: str = "ownerEmail") -> Filter:
    return Filter(not_equals={field_name: email})

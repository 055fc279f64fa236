# permissions/context.py

"""
REQUEST CONTEXT

Built once per request at the view boundary and passed into services.
Services read tenant scope and grants from here; they never look at the
HTTP request or re-derive the user's company.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from rest_framework.exceptions import PermissionDenied

from .roles import effective_capabilities_for


@dataclass(frozen=True)
class RequestContext:
    company_id: UUID
    business_unit_id: Optional[UUID]
    user: object = None
    grants: frozenset = field(default_factory=frozenset)

    def can(self, capability: str) -> bool:
        return capability in self.grants

    def require(self, capability: str) -> None:
        if not self.can(capability):
            raise PermissionDenied("You do not have permission to perform this action.")

    @property
    def user_id(self):
        return getattr(self.user, "pk", None)

    @classmethod
    def for_user(cls, user) -> "RequestContext":
        company_id = getattr(user, "company_id", None)
        if not company_id:
            raise PermissionDenied("User is not assigned to a company.")

        return cls(
            company_id=company_id,
            business_unit_id=getattr(user, "business_unit_id", None),
            user=user,
            grants=frozenset(effective_capabilities_for(user)),
        )


def build_request_context(request) -> RequestContext:
    cached = getattr(request, "_request_context", None)
    if cached is not None:
        return cached

    ctx = RequestContext.for_user(request.user)
    request._request_context = ctx
    return ctx


class RequestContextMixin:
    """
    View mixin: `self.ctx` is the RequestContext, and querysets are
    scoped to the caller's company through `scope_queryset`.
    """

    @property
    def ctx(self) -> RequestContext:
        return build_request_context(self.request)

    def scope_queryset(self, qs, field_name: str = "company_id"):
        return qs.filter(**{field_name: self.ctx.company_id})

"""OData query models and URL construction."""

from __future__ import annotations

from datetime import date, timedelta
from urllib.parse import quote

from pydantic import BaseModel, Field

DEFAULT_PAGE_SIZE = 500
EXPAND_PAGE_SIZE = 100

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(value: str) -> str:
    """Percent-encode a query value the way ``encodeURIComponent`` does."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


class ODataExpand(BaseModel):
    """A navigation property to include inline, with its own query options."""

    navigation: str
    select: list[str] = Field(default_factory=list)
    filter: str | None = None
    expand: list[ODataExpand] = Field(default_factory=list)

    def render(self) -> str:
        """Render as ``Nav($select=a,b;$filter=...;$expand=...)``."""
        options: list[str] = []
        if self.select:
            options.append(f"$select={','.join(self.select)}")
        if self.filter:
            options.append(f"$filter={self.filter}")
        if self.expand:
            options.append(f"$expand={','.join(e.render() for e in self.expand)}")
        if not options:
            return self.navigation
        return f"{self.navigation}({';'.join(options)})"


ODataExpand.model_rebuild()


class ODataQuery(BaseModel):
    """Everything needed to fetch one entity collection."""

    entity: str = Field(min_length=1, description="Entity path, e.g. 'CostCentre'")
    filter: str | None = None
    select: list[str] = Field(default_factory=list)
    expand: list[ODataExpand] = Field(default_factory=list)
    orderby: str | None = None
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)

    def render_expand(self) -> str | None:
        if not self.expand:
            return None
        return ",".join(e.render() for e in self.expand)

    def build_url(self, odata_base: str, skip: int = 0) -> str:
        """Build the request URL for the page starting at *skip*."""
        params = [f"$top={self.page_size}", f"$skip={skip}"]
        if self.filter:
            params.append(f"$filter={encode_component(self.filter)}")
        expand = self.render_expand()
        if expand:
            params.append(f"$expand={encode_component(expand)}")
        if self.select:
            params.append(f"$select={encode_component(','.join(self.select))}")
        if self.orderby:
            params.append(f"$orderby={encode_component(self.orderby)}")
        return f"{odata_base.rstrip('/')}/{self.entity.strip('/')}?{'&'.join(params)}"


def and_filters(*clauses: str | None) -> str | None:
    """Join non-empty filter clauses with ``and``."""
    parts = [c for c in clauses if c]
    return " and ".join(parts) if parts else None


def date_range_filter(field: str, from_date: date | None, to_date: date | None) -> str | None:
    """Filter *field* to ``[from_date 00:00, to_date + 1 day 00:00)`` in UTC."""
    clauses: list[str] = []
    if from_date:
        clauses.append(f"{field} ge {from_date.isoformat()}T00:00:00Z")
    if to_date:
        clauses.append(f"{field} lt {(to_date + timedelta(days=1)).isoformat()}T00:00:00Z")
    return and_filters(*clauses)


def id_in_filter(field: str, ids: list[int]) -> str | None:
    """``Id eq 1 or Id eq 2 ...`` for batched lookups."""
    if not ids:
        return None
    return " or ".join(f"{field} eq {i}" for i in ids)

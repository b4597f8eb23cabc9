# schemas.py
from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from approval import IndexLocator, Locator, MatchLocator
from errors import ValidationError
from line_items import CategoryShape


class CategoryView(BaseModel):
    rab_id: int
    category: str
    items: List[Any]
    revision: str


class SubmissionOut(CategoryView):
    before: int
    after: int
    notified: bool


class StatusUpdate(BaseModel):
    status: Any = None
    outer_index: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "outer_index",
            "section_index",
            "entertainment_index",
            "material_tambahan_index",
            "mr_index",
        ),
    )
    inner_index: Optional[int] = Field(
        None, validation_alias=AliasChoices("inner_index", "termin_index", "material_index")
    )
    item: Optional[str] = None
    satuan: Optional[str] = None
    qty: Optional[float] = None
    revision: Optional[str] = None

    def to_locator(self, shape: CategoryShape) -> Locator:
        if shape == CategoryShape.FLAT:
            if self.item is None or self.satuan is None or self.qty is None:
                raise ValidationError("item, satuan and qty are required")
            return MatchLocator(item=self.item, unit=self.satuan, qty=self.qty)
        if self.outer_index is None or self.inner_index is None:
            raise ValidationError("outer_index and inner_index are required")
        return IndexLocator(outer=self.outer_index, inner=self.inner_index)


class ApprovalOut(BaseModel):
    rab_id: int
    category: str
    status: str
    changed: bool
    notified: bool
    item: dict
    revision: str


class PlanStatusUpdate(BaseModel):
    status: str


class PlanStatusOut(BaseModel):
    id: int
    status: str

    class Config:
        from_attributes = True


class DeviceTokenRegister(BaseModel):
    device_token: str
    device_type: Optional[str] = None
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    app_version: Optional[str] = None


class DeviceTokenOut(BaseModel):
    id: int
    user_id: int
    is_active: bool
    last_used_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationOut(BaseModel):
    id: int
    title: str
    body: str
    type: Optional[str] = None
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    action_url: Optional[str] = None
    priority: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    data: Optional[Any] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

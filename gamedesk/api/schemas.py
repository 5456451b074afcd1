from pydantic import BaseModel, Field


class NotificationAckSchema(BaseModel):
    accepted: bool
    changed: bool = False
    kind: str | None = None


class SessionSchema(BaseModel):
    slot_id: int | str
    booking_id: int | str
    console_number: str
    console_type: str
    start_time: str
    end_time: str
    date: str
    price: float = 0.0
    username: str = ""
    status: str = "active"
    user_id: str | None = None
    game_id: str | None = None


class SnapshotRequestSchema(BaseModel):
    sessions: list[SessionSchema] = Field(default_factory=list)


class TimerSchema(BaseModel):
    elapsed: str
    extra: str
    progress_percent: float
    overtime_amount: int


class LiveRowSchema(BaseModel):
    slot_id: int | str
    booking_id: int | str
    console_number: str
    console_type: str
    username: str
    date: str
    start_time: str
    end_time: str
    status: str
    total_price: float
    slot_ids: list[int | str]
    booking_ids: list[int | str]
    timer: TimerSchema


class PendingRequestSchema(BaseModel):
    booking_id: str
    username: str
    console_type: str
    amount: float


class SettleRequestSchema(BaseModel):
    payment_mode: str = "Cash"
    waive_off: float = 0
    rate_per_hour: float | None = None


class SettleResponseSchema(BaseModel):
    booking_id: str
    extra_seconds: int
    rate_per_hour: float
    amount: int
    waive_off: float
    net_amount: float


class SlotSchema(BaseModel):
    slot_id: int
    date: str
    start_time: str
    end_time: str
    console_id: int
    console_name: str
    unit_price: float
    available: bool


class CustomerSchema(BaseModel):
    name: str
    email: str
    phone: str


class PassValidateRequestSchema(BaseModel):
    pass_uid: str
    hours_required: float = Field(default=0, ge=0)


class PassValidateResponseSchema(BaseModel):
    valid: bool
    error: str | None = None
    remaining_hours: float | None = None


class AddOnSchema(BaseModel):
    item_id: int
    name: str = ""
    unit_price: float = 0
    quantity: int = 1


class PrivateIntervalSchema(BaseModel):
    console_id: int
    console_name: str = ""
    date: str
    start_time: str
    end_time: str
    hourly_rate: float


class BookingRequestSchema(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    payment_method: str = "Cash"
    pass_uid: str = ""
    slot_ids: list[int] = Field(default_factory=list)
    private: PrivateIntervalSchema | None = None
    add_ons: list[AddOnSchema] = Field(default_factory=list)
    waive_off: float = 0
    extra_fee: float = 0
    notes: str = ""


class BookingResultSchema(BaseModel):
    status: str
    booking_id: str | None = None

from __future__ import annotations

from pydantic import BaseModel, Field

# Dates stay raw strings here as well so a bad value comes back as a FORMAT
# issue on its field rather than as a request validation error.


class NewPosting(BaseModel):
    """Descriptors of the posting an employee moves into."""

    posting_place_title: str = ""
    hq_id: str = ""
    tehsil_id: str = ""
    posting_category_id: str = ""
    unit_id: str = ""
    designation_id: str = ""
    bps: str = ""
    order_number: str = ""
    order_date: str | None = None
    status_remarks: str = ""


class TransferPayload(NewPosting):
    """Inter-office transfer: relieve from the current posting and join a new one."""

    relieving_date: str | None = None
    joining_date: str | None = None
    mark_as_current: bool = True
    to_date: str | None = Field(
        default=None,
        description="End of the new posting; required when it is not marked as current",
    )


class RejoinPayload(NewPosting):
    """Return to service after a rejoinable exit status."""

    rejoin_date: str | None = None
    mark_as_current: bool = True


class SuccessionPayload(BaseModel):
    """Posting-title update: same posting, new title from the joining date."""

    relieving_date: str | None = None
    joining_date: str | None = None
    new_posting_place_title: str = ""
    order_number: str | None = None
    order_date: str | None = None

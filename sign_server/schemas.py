"""
Request schema for POST /sign. JSON booleans are not accepted as numbers, and numeric fields
do not accept strings (meetingNumber aside, which may be a digit string).
"""
import re
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

_DIGITS = re.compile(r"[0-9]+")

MIN_UUID_LENGTH = 10


class SignRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Identity store user UUID; the role is looked up from it, never taken from the body
    uuid: StrictStr = Field(..., min_length=MIN_UUID_LENGTH)
    meeting_number: Union[Annotated[StrictInt, Field(ge=0)], StrictStr] = Field(..., alias="meetingNumber")
    video_webrtc_mode: int = Field(default=1, ge=0, le=1, alias="videoWebRtcMode")

    @field_validator("meeting_number")
    @classmethod
    def _numeric_meeting_number(cls, value: int | str) -> int | str:
        if isinstance(value, str):
            # Meeting ids are often pasted as "987 6543 210"
            value = value.strip().replace(" ", "")
            if not _DIGITS.fullmatch(value):
                raise ValueError("meetingNumber must contain digits only")
        return value

    @field_validator("video_webrtc_mode", mode="before")
    @classmethod
    def _json_number(cls, value: Any) -> Any:
        # 1.0 is fine, 1.5 fails the int check that follows
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("videoWebRtcMode must be a number")
        return value

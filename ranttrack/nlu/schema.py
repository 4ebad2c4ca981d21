from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field

Severity = Literal["mild", "moderate", "severe"]
Method = Literal["phrase", "lemma", "quick_checkin"]
TimeOfDay = Literal["morning", "afternoon", "evening", "night", "all_day"]
Timeframe = Literal["after", "during", "from"]


class PainDetails(BaseModel):
    qualifiers: List[str] = Field(default_factory=list)  # canonical ids, text order
    location: Optional[str] = None
    radiation: Optional[str] = None
    distribution: Optional[str] = None
    consistency: Optional[str] = None
    onset: Optional[str] = None


class ActivityTrigger(BaseModel):
    activity: str                    # lowercased source words, e.g. "grocery shopping"
    timeframe: Timeframe
    category: Optional[str] = None   # canonical activity id when a dictionary activity matched


# ---- SymptomDuration: tagged on `kind` ----

class OngoingDuration(BaseModel):
    kind: Literal["ongoing"] = "ongoing"


class QualifiedDuration(BaseModel):
    kind: Literal["qualified"] = "qualified"
    qualifier: Literal["all", "most_of"]
    unit: Literal["days", "hours"]


class MeasuredDuration(BaseModel):
    kind: Literal["measured"] = "measured"
    value: float
    unit: Literal["minutes", "hours", "days", "weeks"]


class SinceDuration(BaseModel):
    kind: Literal["since"] = "since"
    since: str


SymptomDuration = Annotated[
    Union[OngoingDuration, QualifiedDuration, MeasuredDuration, SinceDuration],
    Field(discriminator="kind"),
]


class ExtractedSymptom(BaseModel):
    id: str
    symptom: str                     # canonical snake_case id
    matched: str                     # verbatim slice of the input
    method: Method
    start: int                       # char offset
    end: int
    severity: Optional[Severity] = None
    pain_details: Optional[PainDetails] = None
    duration: Optional[SymptomDuration] = None
    time_of_day: Optional[TimeOfDay] = None
    trigger: Optional[ActivityTrigger] = None
    confidence: Optional[float] = None


class SpoonCount(BaseModel):
    current: Optional[float] = None
    used: Optional[float] = None
    started: Optional[float] = None
    energy_level: Optional[float] = None  # 0-10


class ExtractionResult(BaseModel):
    text: str
    symptoms: List[ExtractedSymptom] = []
    spoon_count: Optional[SpoonCount] = None

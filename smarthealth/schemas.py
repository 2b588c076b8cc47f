from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field, field_validator


def parse_int(value, default=0):
    """Operator numbers: anything that is not a plain integer becomes `default`."""
    if isinstance(value, bool): return default
    if isinstance(value, int): return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


# --- CATALOG ---
class DiseaseRecord(BaseModel):
    id: int
    name: str
    specialization: str = ""
    symptom_ids: Set[int] = Field(default_factory=set)


class MatchResult(BaseModel):
    disease_id: int
    disease_name: str
    specialization: str
    match_count: int
    total_symptoms: int
    score: float


class DoctorOption(BaseModel):
    id: int
    name: str


class GatheredSymptoms(BaseModel):
    symptom_ids: List[int] = Field(default_factory=list)
    registered: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)


# --- VISIT RECORDS ---
class PatientIn(BaseModel):
    name: str = ""
    age: int = 0
    gender: str = ""
    contact: str = ""

    @field_validator("age", mode="before")
    @classmethod
    def coerce_age(cls, v):
        return parse_int(v)


class PrescriptionIn(BaseModel):
    patient_id: int
    disease_id: int
    doctor_id: int = 0
    notes: str = ""


class VisitStatus(str, Enum):
    PATIENT_FAILED = "patient_failed"
    NO_VALID_SYMPTOMS = "no_valid_symptoms"
    NO_PROBABLE_DISEASE = "no_probable_disease"
    SKIPPED = "skipped"
    CANDIDATE_CHANGED = "candidate_changed"
    PRESCRIPTION_FAILED = "prescription_failed"
    RECORDED = "recorded"


class VisitRequest(BaseModel):
    patient: PatientIn
    symptoms: str = ""
    disease_pick: int = 0  # 1-based index into the shown candidates, 0 = skip
    doctor_pick: int = 0  # 1-based index into the recommended doctors, 0 = manual id
    manual_doctor_id: int = 0
    notes: str = ""
    # disease id the operator saw at disease_pick; the visit stops if the ranking disagrees
    expected_disease_id: Optional[int] = None

    @field_validator("disease_pick", "doctor_pick", "manual_doctor_id", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        return parse_int(v)


class VisitOutcome(BaseModel):
    status: VisitStatus
    message: str = ""
    patient_id: Optional[int] = None
    symptom_ids: List[int] = Field(default_factory=list)
    registered: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    candidates: List[MatchResult] = Field(default_factory=list)
    chosen: Optional[MatchResult] = None
    doctors: List[DoctorOption] = Field(default_factory=list)
    doctor_id: Optional[int] = None
    prescription_id: Optional[int] = None

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


Status = Literal["not_skin", "healthy", "condition"]
DetailCategory = Literal["symptoms", "causes", "care", "healing"]


class AnalysisResult(BaseModel):
    """
    Structured classification returned by the oracle.

    Wire names are camelCase (isSkin, diseaseName, ...). Absent booleans are
    False, absent strings None and absent lists empty, so the all-default
    instance doubles as the fail-soft fallback.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    is_skin: bool = False
    is_healthy: bool = False
    disease_name: Optional[str] = None
    description: Optional[str] = None
    symptoms: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    precautions: List[str] = Field(default_factory=list)
    prevention: List[str] = Field(default_factory=list)
    treatments: List[str] = Field(default_factory=list)
    medicines: List[str] = Field(default_factory=list)
    healing_period: Optional[str] = None

    @field_validator("is_skin", "is_healthy", mode="before")
    @classmethod
    def _null_bool_is_false(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator(
        "symptoms", "reasons", "precautions", "prevention", "treatments", "medicines",
        mode="before",
    )
    @classmethod
    def _null_list_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    # -----------------------------
    # Presentation contract
    # -----------------------------

    @property
    def status(self) -> Status:
        # Strict priority: not skin > healthy > condition
        if not self.is_skin:
            return "not_skin"
        if self.is_healthy:
            return "healthy"
        return "condition"

    def findings(self) -> Dict[str, Any]:
        """
        Disease-bearing fields, or an empty view when the status voids them.
        Literal field content is ignored for not_skin / healthy results.
        """
        if self.status != "condition":
            return {}
        return {
            "diseaseName": self.disease_name,
            "description": self.description,
            "symptoms": list(self.symptoms),
            "reasons": list(self.reasons),
            "precautions": list(self.precautions),
            "prevention": list(self.prevention),
            "treatments": list(self.treatments),
            "medicines": list(self.medicines),
            "healingPeriod": self.healing_period,
        }

    def detail_points(self, category: DetailCategory) -> List[str]:
        if self.status != "condition":
            return []
        if category == "symptoms":
            return list(self.symptoms)
        if category == "causes":
            return list(self.reasons)
        if category == "care":
            return [*self.precautions, *self.prevention]
        if category == "healing":
            return [self.healing_period or "Standard cycle", *self.treatments, *self.medicines]
        raise ValueError(f"Unknown detail category: {category}")

    def summary_label(self) -> str:
        if self.status == "not_skin":
            return "Not Skin"
        if self.status == "healthy":
            return "Healthy Skin"
        return self.disease_name or "Analysis"


def _string_list(description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


# Response-shape constraint sent to the oracle with every classification request.
ANALYSIS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "isSkin": {"type": "boolean", "description": "Whether the image is clearly human skin."},
        "isHealthy": {
            "type": "boolean",
            "description": "Whether the skin appears healthy without notable rashes or lesions.",
        },
        "diseaseName": {"type": "string", "description": "Likely name of the skin condition."},
        "description": {"type": "string", "description": "A detailed medical overview of the condition."},
        "treatments": _string_list("Recommended treatment approaches."),
        "medicines": _string_list("Common over-the-counter or clinical medicines often used."),
        "symptoms": _string_list("Key visual or sensory symptoms."),
        "reasons": _string_list("Common causes or triggers for this condition."),
        "healingPeriod": {"type": "string", "description": "Typical duration for recovery."},
        "precautions": _string_list("Immediate precautions to take."),
        "prevention": _string_list("Long-term prevention strategies."),
    },
    "required": ["isSkin", "isHealthy"],
}

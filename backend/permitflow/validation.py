from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from permitflow.errors import ValidationFailed
from permitflow.permissions import validate_permission_key
from permitflow.time_utils import parse_iso_datetime


@dataclass(frozen=True)
class WorkType:
    value: str
    label: str
    abbr: str

    def to_dict(self) -> dict:
        return {"value": self.value, "label": self.label, "abbr": self.abbr}


# Sorted alphabetically by label
WORK_TYPES = (
    WorkType("CHEMICAL", "Chemical Handling Permit", "CHP"),
    WorkType("COLD_WORK", "Cold Work Permit", "CWP"),
    WorkType("CONFINED_SPACE", "Confined Space Permit", "CSP"),
    WorkType("ELECTRICAL", "Electrical Work Permit", "EWP"),
    WorkType("ENERGIZE", "Energize Permit", "EOMP"),
    WorkType("EXCAVATION", "Excavation Work Permit", "EXP"),
    WorkType("GENERAL", "General Permit", "GP"),
    WorkType("HOT_WORK", "Hot Work Permit", "HWP"),
    WorkType("PRESSURE_TESTING", "Hydro Pressure Testing", "HPT"),
    WorkType("LIFTING", "Lifting Permit", "LP"),
    WorkType("LOTO", "LOTO Permit", "LOTO"),
    WorkType("RADIATION", "Radiation Work Permit", "RWP"),
    WorkType("SWMS", "Safe Work Method Statement", "SWMS"),
    WorkType("VEHICLE", "Vehicle Work Permit", "VWP"),
    WorkType("WORKING_AT_HEIGHT", "Work Height Permit", "WHP"),
)

WORK_TYPE_VALUES = frozenset(wt.value for wt in WORK_TYPES)

PRIORITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

# Safety equipment every requester must acknowledge before submission
MANDATORY_PPE = (
    "Fire Extinguisher",
    "Safety Belts",
    "Safety Shoes",
    "Safety Helmets",
    "Electrical Isolation",
)

ID_PROOF_TYPES = ("AADHAAR", "PAN", "DRIVING_LICENSE", "PASSPORT", "VOTER_ID", "OTHER")

REQUIRED_ON_CREATE = ("title", "location", "work_type", "start_date", "end_date")


def _require_text(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{key} is required")
    return value.strip()


def _parse_datetime(data: dict, key: str):
    try:
        value = parse_iso_datetime(data.get(key))
    except (TypeError, ValueError):
        raise ValidationFailed(f"{key} must be an ISO-8601 datetime")
    if value is None:
        raise ValidationFailed(f"{key} is required")
    return value


def _string_list(data: dict, key: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValidationFailed(f"{key} must be a list")
    return [str(item).strip() for item in value if str(item).strip()]


def validate_workers(workers: Any) -> list[dict]:
    """
    Every worker needs a name, an ID-proof number and an ID-proof image.

    At least one worker is required.
    """
    if not isinstance(workers, list) or not workers:
        raise ValidationFailed("At least one worker is required")

    cleaned = []
    for index, worker in enumerate(workers, start=1):
        if not isinstance(worker, dict):
            raise ValidationFailed(f"Worker {index} must be an object")
        name = (worker.get("name") or "").strip()
        if not name:
            raise ValidationFailed(f"Worker {index}: name is required")
        id_proof_number = (worker.get("id_proof_number") or "").strip()
        if not id_proof_number:
            raise ValidationFailed(f"Worker {index}: ID proof number is required")
        id_proof_image = (worker.get("id_proof_image") or "").strip()
        if not id_proof_image:
            raise ValidationFailed(f"Worker {index}: ID proof image is required")
        id_proof_type = (worker.get("id_proof_type") or "OTHER").strip().upper()
        if id_proof_type not in ID_PROOF_TYPES:
            raise ValidationFailed(
                f"Worker {index}: id_proof_type must be one of: {', '.join(ID_PROOF_TYPES)}"
            )
        cleaned.append({
            "name": name,
            "phone": (worker.get("phone") or "").strip() or None,
            "id_proof_type": id_proof_type,
            "id_proof_number": id_proof_number,
            "id_proof_image": id_proof_image,
        })
    return cleaned


def validate_equipment(equipment: list[str]) -> list[str]:
    missing = [item for item in MANDATORY_PPE if item not in equipment]
    if missing:
        raise ValidationFailed(
            f"Mandatory safety equipment not acknowledged: {', '.join(missing)}",
            details={"missing_equipment": missing},
        )
    return equipment


def validate_permit_payload(data: Any, *, partial: bool = False) -> dict:
    """
    Validate and normalize a permit create/update payload.

    Unknown keys are ignored. On create (partial=False) all required fields,
    workers, mandatory equipment and the declaration are enforced. On update
    (partial=True) only the supplied fields are checked; the caller is
    responsible for checking the merged start/end pair.

    Raises:
        ValidationFailed: on the first invalid field
    """
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")

    cleaned: dict[str, Any] = {}

    if not partial:
        for key in REQUIRED_ON_CREATE:
            if data.get(key) in (None, ""):
                raise ValidationFailed(f"{key} is required")

    for key in ("title", "location"):
        if key in data:
            cleaned[key] = _require_text(data, key)

    for key in ("description", "contractor_name", "contractor_phone", "company_name"):
        if key in data:
            value = data.get(key)
            cleaned[key] = value.strip() if isinstance(value, str) and value.strip() else None

    if "timezone" in data:
        cleaned["timezone"] = _require_text(data, "timezone")

    if "work_type" in data:
        work_type = str(data.get("work_type") or "").strip().upper()
        if work_type not in WORK_TYPE_VALUES:
            raise ValidationFailed(f"Invalid work_type '{data.get('work_type')}'")
        cleaned["work_type"] = work_type

    if "priority" in data:
        priority = str(data.get("priority") or "").strip().upper()
        if priority not in PRIORITIES:
            raise ValidationFailed(f"priority must be one of: {', '.join(PRIORITIES)}")
        cleaned["priority"] = priority

    for key in ("start_date", "end_date"):
        if key in data:
            cleaned[key] = _parse_datetime(data, key)

    if "start_date" in cleaned and "end_date" in cleaned:
        if cleaned["end_date"] <= cleaned["start_date"]:
            raise ValidationFailed("end_date must be after start_date")

    for key in ("hazards", "precautions", "equipment"):
        if key in data:
            cleaned[key] = _string_list(data, key)

    if "workers" in data or not partial:
        cleaned["workers"] = validate_workers(data.get("workers"))

    if "equipment" in cleaned or not partial:
        cleaned["equipment"] = validate_equipment(cleaned.get("equipment", []))

    if "declaration_accepted" in data or not partial:
        if data.get("declaration_accepted") is not True:
            raise ValidationFailed("The safety declaration must be accepted")
        cleaned["declaration_accepted"] = True

    return cleaned


def validate_role_payload(data: Any, *, partial: bool = False) -> dict:
    """Validate a role create/update payload against the permission catalogue."""
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")

    cleaned: dict[str, Any] = {}

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip().upper().replace(" ", "_")
        if not name:
            raise ValidationFailed("Role name is required")
        cleaned["name"] = name

    if "display_name" in data or not partial:
        cleaned["display_name"] = _require_text(data, "display_name")

    if "description" in data:
        description = data.get("description")
        cleaned["description"] = description.strip() if isinstance(description, str) and description.strip() else None

    if "permissions" in data:
        permissions = data.get("permissions")
        if not isinstance(permissions, list):
            raise ValidationFailed("permissions must be a list of permission keys")
        unknown = [key for key in permissions if not validate_permission_key(key)]
        if unknown:
            raise ValidationFailed(
                f"Unknown permission keys: {', '.join(map(str, unknown))}",
                details={"unknown_permissions": unknown},
            )
        # Deduplicate, keep order
        cleaned["permissions"] = list(dict.fromkeys(permissions))

    if "ui_config" in data:
        ui_config = data.get("ui_config")
        if not isinstance(ui_config, dict):
            raise ValidationFailed("ui_config must be an object")
        cleaned["ui_config"] = ui_config

    return cleaned

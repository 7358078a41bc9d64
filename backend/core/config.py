"""Configuration loading utilities for YAML-based application settings."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .logging_config import get_logger


logger = get_logger(__name__)
_BASE_DIR = Path(__file__).resolve().parent.parent
_CONFIG_PATH = _BASE_DIR / "config.yml"

_MISSING_REFERENCE_POLICIES = {"accept", "reject", "require_manual_review"}
_OPERATOR_ROLES = {"ADMIN", "REVIEWER"}


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from YAML configuration file."""

    app_name: str
    debug: bool
    host: str
    port: int
    cors_origins: list[str]
    firebase_enabled: bool
    firebase_project_id: Optional[str]
    firebase_credentials_path: Optional[str]
    firebase_applications_collection: str
    firebase_documents_collection: str
    firebase_verifications_collection: str
    firebase_audit_collection: str
    similarity_threshold: float
    similarity_sample_count: int
    byte_tolerance: int
    on_missing_reference: str
    whitelist_path: str
    max_workers: int
    document_timeout_sec: float
    max_file_size_bytes: int
    salary_slip_max_file_size_bytes: int
    name_match_threshold: float
    name_partial_threshold: float
    salary_tolerance_ratio: float
    face_match_threshold: float
    ocr_enabled: bool
    ocr_endpoint_url: Optional[str]
    ocr_api_key: Optional[str]
    ocr_timeout_sec: int
    explanation_enabled: bool
    explanation_base_url: str
    explanation_api_key: Optional[str]
    explanation_model: str
    explanation_timeout_sec: int
    admin_operators: Dict[str, str] = field(default_factory=dict)
    override_limit: int = 1


def _to_bool(value: Any, default: bool = False) -> bool:
    """Convert value to bool with a default fallback."""
    try:
        if isinstance(value, bool):
            return value
        return value.strip().lower() in {"1", "true", "yes", "on"}
    except (AttributeError, ValueError):
        logger.warning("Invalid boolean value '%s'. Using default=%s", value, default)
        return default


def _to_int(value: Any, default: int) -> int:
    """Convert value to int with a default fallback."""
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid integer value '%s'. Using default=%s", value, default)
        return default


def _to_float(value: Any, default: float) -> float:
    """Convert value to float with a default fallback."""
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid float value '%s'. Using default=%s", value, default)
        return default


def _to_list(value: Any) -> list[str]:
    """Convert list-like or comma-separated value to list[str]."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return [item.strip() for item in str(value).split(",") if item.strip()]


def _to_operator_map(value: Any) -> Dict[str, str]:
    """Convert operator registry config into `{operator_id: ROLE}`."""
    if not isinstance(value, dict):
        if value:
            logger.warning("Invalid admin operators value '%s'. Using empty registry.", value)
        return {}
    operators: Dict[str, str] = {}
    for operator_id, role in value.items():
        normalized_id = str(operator_id or "").strip()
        normalized_role = str(role or "").strip().upper()
        if not normalized_id or normalized_role not in _OPERATOR_ROLES:
            logger.warning("Skipping operator entry id=%s role=%s", operator_id, role)
            continue
        operators[normalized_id] = normalized_role
    return operators


def _to_policy(value: Any, default: str = "accept") -> str:
    """Normalize the missing-reference policy name."""
    normalized = str(value or "").strip().lower().replace("-", "_")
    if normalized not in _MISSING_REFERENCE_POLICIES:
        logger.warning("Invalid on_missing_reference value '%s'. Using default=%s", value, default)
        return default
    return normalized


def _resolve_path(value: Any, default: str) -> str:
    """Resolve a config path relative to the backend directory."""
    raw = Path(str(value or default))
    if not raw.is_absolute():
        raw = _BASE_DIR / raw
    return str(raw)


def _read_config() -> dict:
    """Read and parse YAML configuration."""
    try:
        with _CONFIG_PATH.open("r", encoding="utf-8") as config_file:
            config_data = yaml.safe_load(config_file) or {}
        logger.info("Configuration loaded from %s", _CONFIG_PATH)
        return config_data
    except FileNotFoundError:
        logger.warning("Config file not found at %s. Falling back to defaults.", _CONFIG_PATH)
        return {}
    except Exception:
        logger.exception("Failed to load config file from %s", _CONFIG_PATH)
        return {}


def load_settings() -> AppSettings:
    """Load and validate application settings from `config.yml`."""
    config = _read_config()
    app_cfg = config.get("app", {}) or {}
    firebase_cfg = config.get("firebase", {}) or {}
    verification_cfg = config.get("verification", {}) or {}
    cross_cfg = config.get("cross_validation", {}) or {}
    ocr_cfg = config.get("ocr", {}) or {}
    explanation_cfg = config.get("explanation", {}) or {}
    admin_cfg = config.get("admin", {}) or {}

    app_name = str(app_cfg.get("name", "Credit Decision Engine"))
    debug = _to_bool(app_cfg.get("debug", False), False)
    host = str(app_cfg.get("host", "127.0.0.1"))
    port = _to_int(app_cfg.get("port", 8000), 8000)
    cors_origins = _to_list(app_cfg.get("cors_origins", ["http://localhost:3000"]))

    firebase_enabled = _to_bool(firebase_cfg.get("enabled", False), False)
    firebase_project_id = firebase_cfg.get("project_id")
    firebase_credentials_path = firebase_cfg.get("credentials_path")
    firebase_applications_collection = str(firebase_cfg.get("applications_collection", "loan_applications"))
    firebase_documents_collection = str(firebase_cfg.get("documents_collection", "documents"))
    firebase_verifications_collection = str(firebase_cfg.get("verifications_collection", "verification_results"))
    firebase_audit_collection = str(firebase_cfg.get("audit_collection", "audit_logs"))

    similarity_threshold = _to_float(verification_cfg.get("similarity_threshold", 80.0), 80.0)
    similarity_sample_count = _to_int(verification_cfg.get("similarity_sample_count", 1000), 1000)
    byte_tolerance = _to_int(verification_cfg.get("byte_tolerance", 5), 5)
    on_missing_reference = _to_policy(verification_cfg.get("on_missing_reference", "accept"))
    whitelist_path = _resolve_path(verification_cfg.get("whitelist_path"), "settings/document_whitelist.json")
    max_workers = max(1, _to_int(verification_cfg.get("max_workers", 5), 5))
    document_timeout_sec = _to_float(verification_cfg.get("document_timeout_sec", 30), 30.0)
    max_file_size_bytes = _to_int(verification_cfg.get("max_file_size_bytes", 10485760), 10485760)
    salary_slip_max_file_size_bytes = _to_int(
        verification_cfg.get("salary_slip_max_file_size_bytes", 5242880),
        5242880,
    )

    name_match_threshold = _to_float(cross_cfg.get("name_match_threshold", 0.70), 0.70)
    name_partial_threshold = _to_float(cross_cfg.get("name_partial_threshold", 0.40), 0.40)
    salary_tolerance_ratio = _to_float(cross_cfg.get("salary_tolerance_ratio", 0.20), 0.20)
    face_match_threshold = _to_float(cross_cfg.get("face_match_threshold", 0.70), 0.70)

    ocr_enabled = _to_bool(ocr_cfg.get("enabled", False), False)
    ocr_endpoint_url = ocr_cfg.get("endpoint_url")
    ocr_api_key = ocr_cfg.get("api_key")
    ocr_timeout_sec = _to_int(ocr_cfg.get("timeout_sec", 20), 20)

    explanation_enabled = _to_bool(explanation_cfg.get("enabled", False), False)
    explanation_base_url = str(explanation_cfg.get("base_url", "https://openrouter.ai/api/v1"))
    explanation_api_key = explanation_cfg.get("api_key")
    explanation_model = str(explanation_cfg.get("model", "meta-llama/llama-3.1-8b-instruct"))
    explanation_timeout_sec = _to_int(explanation_cfg.get("timeout_sec", 15), 15)

    admin_operators = _to_operator_map(admin_cfg.get("operators", {}))
    override_limit = max(1, _to_int(admin_cfg.get("override_limit", 1), 1))

    return AppSettings(
        app_name=app_name,
        debug=debug,
        host=host,
        port=port,
        cors_origins=cors_origins,
        firebase_enabled=firebase_enabled,
        firebase_project_id=firebase_project_id,
        firebase_credentials_path=firebase_credentials_path,
        firebase_applications_collection=firebase_applications_collection,
        firebase_documents_collection=firebase_documents_collection,
        firebase_verifications_collection=firebase_verifications_collection,
        firebase_audit_collection=firebase_audit_collection,
        similarity_threshold=similarity_threshold,
        similarity_sample_count=similarity_sample_count,
        byte_tolerance=byte_tolerance,
        on_missing_reference=on_missing_reference,
        whitelist_path=whitelist_path,
        max_workers=max_workers,
        document_timeout_sec=document_timeout_sec,
        max_file_size_bytes=max_file_size_bytes,
        salary_slip_max_file_size_bytes=salary_slip_max_file_size_bytes,
        name_match_threshold=name_match_threshold,
        name_partial_threshold=name_partial_threshold,
        salary_tolerance_ratio=salary_tolerance_ratio,
        face_match_threshold=face_match_threshold,
        ocr_enabled=ocr_enabled,
        ocr_endpoint_url=ocr_endpoint_url,
        ocr_api_key=ocr_api_key,
        ocr_timeout_sec=ocr_timeout_sec,
        explanation_enabled=explanation_enabled,
        explanation_base_url=explanation_base_url,
        explanation_api_key=explanation_api_key,
        explanation_model=explanation_model,
        explanation_timeout_sec=explanation_timeout_sec,
        admin_operators=admin_operators,
        override_limit=override_limit,
    )

from config_model.validation.base import instances, meta_validate, validate
from config_model.validation.result import CheckResult, Diagnostic

__all__ = ["CheckResult", "Diagnostic", "instances", "meta_validate", "validate"]

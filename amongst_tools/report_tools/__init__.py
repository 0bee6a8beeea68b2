from .allure_utils import attach_invocation, attach_json, attach_text

__all__ = [
    "attach_invocation",
    "attach_json",
    "attach_text",
]

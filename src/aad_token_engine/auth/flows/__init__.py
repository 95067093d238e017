"""Interactive sign-in flows"""

from .authorization_code import AuthorizationCodeLogin, prompt_for_redirect
from .device_code import DeviceCodeLogin

__all__ = [
    "AuthorizationCodeLogin",
    "DeviceCodeLogin",
    "prompt_for_redirect",
]

"""
Access control consumed by the engine: roles, allow-list and deny-list
(`gate`), and the decorators that apply them to public operations (`guards`).
"""

from .gate import AccessGate, ControlCenter, Role, role_reason

__all__ = ["AccessGate", "ControlCenter", "Role", "role_reason"]

from .context import AutomationContext, build_automation_context

__all__ = ["AutomationContext", "build_automation_context"]

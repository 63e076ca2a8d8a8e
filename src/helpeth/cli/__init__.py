"""
helpeth CLI Module

Click front end (``enhanced_cli``) and the command variants it dispatches
(``commands``).
"""

__all__ = []

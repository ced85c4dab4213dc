# src/welo_stage/services/__init__.py
"""Business logic services for the Welo application.

Submodules are imported directly (``welo_stage.services.delivery`` and so on);
the store depends on ``errors`` so this package stays free of eager imports.
"""

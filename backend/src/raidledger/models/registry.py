"""
Model registry for the Raid Ledger backend.

Ensures all SQLAlchemy models are imported and attached to ``Base.metadata``
before tables are created.
"""


def register_all_models():
    """Import all SQLAlchemy models so they're registered with SQLAlchemy."""
    from . import AppSetting, Base, PluginInstallRecord

    return {
        "Base": Base,
        "AppSetting": AppSetting,
        "PluginInstallRecord": PluginInstallRecord,
    }

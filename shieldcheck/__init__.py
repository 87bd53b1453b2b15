"""shieldcheck — structural and physical validation for radiation-shielding problem descriptions."""

__version__ = "0.1.0"

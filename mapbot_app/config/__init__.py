"""
Configuration module.

Default parameters, YAML profile loading with layered precedence, and
validation of operator-supplied settings.
"""

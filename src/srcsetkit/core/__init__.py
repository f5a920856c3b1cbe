"""
Core modules for srcsetkit.

This package contains the core logic for:
- Configuration management (dataclass, YAML file, environment)
- Variant path and srcset derivation
- Converter invocation
- Batch variant generation
- Responsive image markup
"""

"""Core conversion modules.

WHY: The core package holds the stable heart of the converter: the
canonical record model, the mapping definition, the transformation and
validation rules, and the conversion engine. Parsers, writers, the CLI
and the HTTP service all build on it.

HOW: records.py defines path addressing, models.py the mapping dataclasses,
serialization.py the .map.json document, flattening.py / validation.py the
authoring-time helpers, transforms.py / engine.py the conversion itself.

RULES:
- Core modules never import from cli, batch or server
- Format-specific logic lives in parsers/ and writers/, not here
"""

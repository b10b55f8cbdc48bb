"""
Transformer App - Flattening and Type Coercion

Responsibilities:
- Flatten nested event payloads into single-level records (depth ceiling 3)
- Optionally keep only declared fields and cast them using a field type map
"""

from .structured import create_structured_quad_entities, create_structured_tri_entities

__all__ = [
    "create_structured_quad_entities",
    "create_structured_tri_entities",
]

# learning/services/catalog.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..exceptions import NotFound
from ..models import Language, Level, Module, User


def _get(model, pk: int, entity: str):
    obj = model.objects.filter(pk=pk).first()
    if obj is None:
        raise NotFound(entity)
    return obj


def _apply(obj, data: Dict[str, Any], fields) -> None:
    """Partial update: only keys present in ``data`` are written."""
    changed = [f for f in fields if f in data]
    for field in changed:
        setattr(obj, field, data[field])
    if changed:
        obj.save(update_fields=changed)


# Languages

def list_languages() -> List[Language]:
    return list(Language.objects.order_by("name"))


def get_language(language_id: int) -> Language:
    return _get(Language, language_id, "language")


def create_language(data: Dict[str, Any]) -> Language:
    return Language.objects.create(name=data["name"], icon=data.get("icon"))


def update_language(language_id: int, data: Dict[str, Any]) -> Language:
    language = get_language(language_id)
    _apply(language, data, ("name", "icon"))
    return language


def delete_language(language_id: int) -> None:
    get_language(language_id).delete()


def set_user_language(user_id: int, language_id: int) -> User:
    user = _get(User, user_id, "user")
    language = get_language(language_id)
    user.language = language
    user.save(update_fields=["language"])
    return user


def get_user_language(user_id: int) -> Optional[Language]:
    user = _get(User, user_id, "user")
    return user.language


# Modules

def list_language_modules(language_id: int) -> List[Module]:
    """Modules of a language by id, each with its levels prefetched by id."""
    get_language(language_id)
    return list(
        Module.objects.filter(language_id=language_id).order_by("id").prefetch_related("levels")
    )


def get_module(module_id: int) -> Module:
    return _get(Module, module_id, "module")


def create_module(data: Dict[str, Any]) -> Module:
    language = get_language(data["language_id"])
    return Module.objects.create(language=language, name=data["name"], icon=data.get("icon"))


def update_module(module_id: int, data: Dict[str, Any]) -> Module:
    module = get_module(module_id)
    _apply(module, data, ("name", "icon"))
    return module


def delete_module(module_id: int) -> None:
    get_module(module_id).delete()


# Levels

def get_level(level_id: int) -> Level:
    return _get(Level, level_id, "level")


def create_level(data: Dict[str, Any]) -> Level:
    module = get_module(data["module_id"])
    return Level.objects.create(module=module, name=data["name"], quests_count=data["quests_count"])


def update_level(level_id: int, data: Dict[str, Any]) -> Level:
    level = get_level(level_id)
    _apply(level, data, ("name", "quests_count"))
    return level


def delete_level(level_id: int) -> None:
    get_level(level_id).delete()

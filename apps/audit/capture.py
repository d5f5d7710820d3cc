"""
Before/after snapshots around a mutation.

Snapshots are best effort: a failed lookup yields ``None`` and is logged,
never raised. Reads go through an entity reader that maps audit labels
("Users", "Referrals", ...) onto Django models.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from django.apps import apps as django_apps
from django.db import models
from django.forms.models import model_to_dict

from core.constants import AuditEntities

logger = logging.getLogger(__name__)


def serialize_model(instance, exclude: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """
    Convert Django model instance to a JSON-safe dict.
    FK -> pk
    M2M -> list[pk]
    Date/Datetime -> ISO
    """
    if instance is None:
        return None

    raw = model_to_dict(instance, exclude=list(exclude) or None)

    # model_to_dict skips non-editable fields
    for field in instance._meta.concrete_fields:
        if field.name not in raw and field.name not in exclude and not field.is_relation:
            raw[field.name] = field.value_from_object(instance)

    data: Dict[str, Any] = {}
    for field, value in raw.items():
        if hasattr(value, "pk"):
            data[field] = value.pk
        elif isinstance(value, (list, tuple)):
            data[field] = [v.pk if hasattr(v, "pk") else v for v in value]
        elif hasattr(value, "isoformat"):
            data[field] = value.isoformat()
        elif isinstance(value, (dict, str, int, float, bool)) or value is None:
            data[field] = value
        else:
            data[field] = str(value)

    return data


class ModelSnapshotReader:
    """
    Entity-read collaborator. Resolves an audit label to a model and reads
    one row as a snapshot.
    """

    def __init__(self):
        self._registry: Dict[str, Dict[str, Any]] = {}

    def register(self, label: str, model, exclude: Iterable[str] = (), lookup: str = "pk"):
        self._registry[label] = {"model": model, "exclude": tuple(exclude), "lookup": lookup}

    def is_registered(self, label: str) -> bool:
        return label in self._registry

    def _resolve(self, label):
        entry = self._registry.get(label)
        if entry is None:
            raise LookupError(f"No snapshot reader registered for '{label}'")

        model = entry["model"]
        if isinstance(model, str):
            model = django_apps.get_model(model)
        return model, entry["exclude"], entry["lookup"]

    def read(self, label: str, entity_id) -> Optional[Dict[str, Any]]:
        model, exclude, lookup = self._resolve(label)
        instance = model._default_manager.filter(**{lookup: entity_id}).first()
        return serialize_model(instance, exclude=exclude)

    def serialize(self, label: str, instance) -> Optional[Dict[str, Any]]:
        _, exclude, _ = self._resolve(label)
        return serialize_model(instance, exclude=exclude)


reader = ModelSnapshotReader()

# Users carry Django's auth m2m tables which add nothing to an audit diff
reader.register(AuditEntities.USERS, "accounts.User", exclude=("groups", "user_permissions"))
# Staff profiles are addressed by their user id
reader.register(AuditEntities.STAFF_MEMBERS, "accounts.StaffMember", lookup="user_id")
reader.register(AuditEntities.REFERRALS, "referrals.Referral")


def register_entity(label: str, model, exclude: Iterable[str] = (), lookup: str = "pk"):
    reader.register(label, model, exclude=exclude, lookup=lookup)


class ChangeCapture:
    def __init__(self, entity_reader: ModelSnapshotReader = None):
        self.reader = entity_reader or reader

    def before(self, entity_type: str, entity_id) -> Optional[Dict[str, Any]]:
        if entity_id is None:
            return None

        try:
            return self.reader.read(entity_type, entity_id)
        except Exception as e:
            logger.warning(f"Before snapshot failed for {entity_type}:{entity_id}: {e}")
            return None

    def after(self, result, entity_type: str, entity_id=None) -> Optional[Dict[str, Any]]:
        """
        Derive the after state from what the mutation returned, falling back
        to a second read when the result carries no state.
        """
        try:
            if isinstance(result, models.Model):
                return self.reader.serialize(entity_type, result)

            data = getattr(result, "data", result)
            if isinstance(data, dict) and data:
                return dict(data)

            if entity_id is not None:
                return self.reader.read(entity_type, entity_id)
        except Exception as e:
            logger.warning(f"After snapshot failed for {entity_type}:{entity_id}: {e}")

        return None


capture = ChangeCapture()

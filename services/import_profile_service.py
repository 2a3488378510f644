"""
Mapping profile service.

Profiles are stored in import_profiles, keyed by a unique profile_name.
mapping_rules is JSONB and has had three shapes over time:

    v2      {"version": 2, "mapping": {"unit_cost": 3}, "defaults": {...}}
    v1      {"mapping": {"unitCost": "3"}, "defaults": {"manufacturerId": "7"}}
    legacy  {"unitCost": "3", "productName": "0"}

Everything is read through migrate_mapping_rules and written back as v2.
"""

from typing import Any, Optional
import structlog

from config import get_supabase_client
from models.import_profile import (
    FieldKey,
    ImportDefaults,
    MappingProfile,
    MappingProfileSave,
    MappingRules,
    MAPPING_RULES_VERSION,
)
from exceptions import (
    ProfileNotFoundError,
    ProfileLoadError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)

PROFILE_COLUMNS = "id, profile_name, mapping_rules, created_at"

# Keys written by the earlier client
_LEGACY_FIELD_KEYS: dict[str, FieldKey] = {
    "manufacturer": FieldKey.MANUFACTURER,
    "productName": FieldKey.PRODUCT_NAME,
    "variantName": FieldKey.VARIANT_NAME,
    "sku": FieldKey.SKU,
    "size": FieldKey.SIZE,
    "cartonSize": FieldKey.CARTON_SIZE,
    "unitCost": FieldKey.UNIT_COST,
    "retailPrice": FieldKey.RETAIL_PRICE,
}

_LEGACY_DEFAULT_KEYS = {
    "manufacturerId": "manufacturer_id",
    "productType": "product_type",
}


# ===================
# RULES MIGRATION
# ===================

def _field_key(key: str) -> Optional[FieldKey]:
    if key in _LEGACY_FIELD_KEYS:
        return _LEGACY_FIELD_KEYS[key]
    try:
        return FieldKey(key)
    except ValueError:
        return None


def _column_index(key: str, value: Any) -> Optional[int]:
    """Stored column -> index. "" and None mean the field is not mapped."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, bool):
        raise ProfileLoadError(f"column for '{key}' is not a number", {"field": key})
    try:
        index = int(value)
    except (TypeError, ValueError):
        raise ProfileLoadError(f"column for '{key}' is not a number", {"field": key})
    if index < 0 or index != float(value):
        raise ProfileLoadError(f"column for '{key}' is not a valid index", {"field": key})
    return index


def migrate_mapping_rules(raw: Any) -> MappingRules:
    """
    Read stored mapping_rules in any known shape.

    Unknown target fields are dropped with a warning so an old profile keeps
    loading after a field is retired.

    Raises:
        ProfileLoadError: The value is not a readable rules object
    """
    if raw is None:
        return MappingRules()
    if not isinstance(raw, dict):
        raise ProfileLoadError("mapping rules must be an object", {"type": type(raw).__name__})

    if "mapping" in raw:
        raw_mapping = raw.get("mapping") or {}
        raw_defaults = raw.get("defaults") or {}
    else:
        raw_mapping = raw
        raw_defaults = {}

    if not isinstance(raw_mapping, dict) or not isinstance(raw_defaults, dict):
        raise ProfileLoadError("mapping and defaults must be objects")

    mapping: dict[FieldKey, int] = {}
    for key, value in raw_mapping.items():
        field = _field_key(key)
        if field is None:
            logger.warning("profile_unknown_field_dropped", field=key)
            continue
        index = _column_index(key, value)
        if index is not None:
            mapping[field] = index

    defaults = {
        _LEGACY_DEFAULT_KEYS.get(key, key): value
        for key, value in raw_defaults.items()
        if _LEGACY_DEFAULT_KEYS.get(key, key) in ImportDefaults.model_fields
    }

    try:
        return MappingRules(
            version=MAPPING_RULES_VERSION,
            mapping=mapping,
            defaults=ImportDefaults(**defaults)
        )
    except ValueError as e:
        raise ProfileLoadError("defaults are invalid", {"error": str(e)})


def dump_mapping_rules(mapping: dict[FieldKey, int], defaults: ImportDefaults) -> dict:
    """Current (v2) JSON shape for mapping_rules."""
    return {
        "version": MAPPING_RULES_VERSION,
        "mapping": {FieldKey(field).value: index for field, index in mapping.items()},
        "defaults": defaults.model_dump(mode="json"),
    }


class ImportProfileService:
    """
    Saved column mappings, one per vendor price-list layout.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "import_profiles"

    def _to_profile(self, row: dict) -> MappingProfile:
        """Row -> profile. Unreadable rules load as an empty mapping with load_error set."""
        try:
            rules = migrate_mapping_rules(row.get("mapping_rules"))
            load_error = None
        except ProfileLoadError as e:
            logger.warning(
                "profile_rules_unreadable",
                profile_id=row.get("id"),
                profile_name=row.get("profile_name"),
                error=e.message
            )
            rules = MappingRules()
            load_error = e.message

        return MappingProfile(
            id=row["id"],
            profile_name=row["profile_name"],
            mapping_rules=rules,
            created_at=row.get("created_at"),
            load_error=load_error
        )

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self) -> list[MappingProfile]:
        """All profiles ordered by name."""
        logger.debug("getting_import_profiles")

        try:
            result = (
                self.db.table(self.table)
                .select(PROFILE_COLUMNS)
                .order("profile_name")
                .execute()
            )
        except Exception as e:
            logger.error("get_import_profiles_failed", error=str(e))
            raise DatabaseError("select", str(e))

        profiles = [self._to_profile(row) for row in result.data]
        logger.info("import_profiles_retrieved", count=len(profiles))
        return profiles

    def get_by_id(self, profile_id: int) -> MappingProfile:
        """
        Get a profile by id.

        Raises:
            ProfileNotFoundError: If the profile doesn't exist
        """
        logger.debug("getting_import_profile", profile_id=profile_id)

        try:
            result = (
                self.db.table(self.table)
                .select(PROFILE_COLUMNS)
                .eq("id", profile_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_import_profile_failed", profile_id=profile_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ProfileNotFoundError(profile_id)
        return self._to_profile(result.data[0])

    def get_by_name(self, profile_name: str) -> Optional[MappingProfile]:
        """Get a profile by exact name, or None."""
        try:
            result = (
                self.db.table(self.table)
                .select(PROFILE_COLUMNS)
                .eq("profile_name", profile_name.strip())
                .execute()
            )
        except Exception as e:
            logger.error("get_import_profile_by_name_failed", profile_name=profile_name, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return self._to_profile(result.data[0])

    # ===================
    # WRITE OPERATIONS
    # ===================

    def save(self, data: MappingProfileSave) -> MappingProfile:
        """
        Create a profile, or overwrite the one with the same name.

        Returns:
            The stored profile
        """
        logger.info(
            "saving_import_profile",
            profile_name=data.profile_name,
            fields=len(data.mapping)
        )

        record = {
            "profile_name": data.profile_name,
            "mapping_rules": dump_mapping_rules(data.mapping, data.defaults),
        }

        try:
            result = (
                self.db.table(self.table)
                .upsert(record, on_conflict="profile_name")
                .execute()
            )
        except Exception as e:
            logger.error("save_import_profile_failed", profile_name=data.profile_name, error=str(e))
            raise DatabaseError("upsert", str(e))

        if not result.data:
            raise DatabaseError("upsert", "no row returned", {"profile_name": data.profile_name})

        profile = self._to_profile(result.data[0])
        logger.info("import_profile_saved", profile_id=profile.id, profile_name=profile.profile_name)
        return profile

    def delete(self, profile_id: int) -> bool:
        """
        Delete a profile.

        Raises:
            ProfileNotFoundError: If the profile doesn't exist
        """
        logger.info("deleting_import_profile", profile_id=profile_id)

        self.get_by_id(profile_id)

        try:
            (
                self.db.table(self.table)
                .delete()
                .eq("id", profile_id)
                .execute()
            )
        except Exception as e:
            logger.error("delete_import_profile_failed", profile_id=profile_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("import_profile_deleted", profile_id=profile_id)
        return True


# Singleton instance for convenience
_import_profile_service: Optional[ImportProfileService] = None


def get_import_profile_service() -> ImportProfileService:
    """Get or create ImportProfileService instance."""
    global _import_profile_service
    if _import_profile_service is None:
        _import_profile_service = ImportProfileService()
    return _import_profile_service

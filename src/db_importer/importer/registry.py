"""Static per-table knowledge used by the import engine.

Everything here is program-wide configuration keyed by table name:
dependency order, structured (JSONB) columns, secondary unique keys and
tables with integer serial primary keys.  None of it is derived from the
live schema at runtime.

Usage:
    from db_importer.importer.registry import JSONB_COLUMNS, TABLE_ORDER

    JSONB_COLUMNS["posts"]
    # frozenset({'robots_json', 'jsonld_overrides', 'review_draft', ...})
"""

from types import MappingProxyType

# Known FK dependency order: lookup/config tables -> users -> content
# definitions -> content -> content-dependent tables.
TABLE_ORDER: tuple[str, ...] = (
    "locales",
    "site_settings",
    "users",
    "user_profiles",
    "post_types",
    "taxonomies",
    "media_assets",
    "templates",
    "template_modules",
    "module_groups",
    "module_group_modules",
    "menus",
    "forms",
    "form_definitions",
    "menu_definitions",
    "global_modules",
    "posts",
    "post_translations",
    "module_instances",
    "post_modules",
    "post_custom_field_values",
    "post_revisions",
    "taxonomy_terms",
    "post_taxonomy_terms",
    "menu_items",
    "preview_tokens",
    "form_submissions",
    "webhooks",
    "webhook_deliveries",
    "agent_executions",
    "activity_logs",
)

JSONB_COLUMNS: MappingProxyType[str, frozenset[str]] = MappingProxyType({
    "posts": frozenset({
        "robots_json",
        "jsonld_overrides",
        "review_draft",
        "ai_review_draft",
        "profile_roles_enabled",
    }),
    "module_instances": frozenset({
        "props",
        "review_props",
        "ai_review_props",
    }),
    "post_modules": frozenset({
        "overrides",
        "review_overrides",
        "ai_review_overrides",
    }),
    "template_modules": frozenset({"default_props"}),
    "module_group_modules": frozenset({"default_props"}),
    "post_revisions": frozenset({"snapshot"}),
    "post_custom_field_values": frozenset({"value"}),
    "menu_items": frozenset({"dynamic_config"}),
    "forms": frozenset({"fields", "settings"}),
    "form_submissions": frozenset({"payload"}),
    "site_settings": frozenset({"value"}),
    "webhooks": frozenset({"headers"}),
    "webhook_deliveries": frozenset({"payload"}),
    "agent_executions": frozenset({"response", "context"}),
    "activity_logs": frozenset({"metadata"}),
})

# Secondary uniqueness beyond the primary key.  Each entry is a group of
# columns that is unique together in the target schema.
UNIQUE_KEYS: MappingProxyType[str, tuple[tuple[str, ...], ...]] = MappingProxyType({
    "users": (("email",),),
    "locales": (("code",),),
    "post_types": (("slug",),),
    "taxonomies": (("slug",),),
    "taxonomy_terms": (("taxonomy_id", "slug"),),
    "menus": (("slug",),),
    "forms": (("slug",),),
    "templates": (("name",),),
    "module_groups": (("name",),),
    "posts": (("slug", "locale"),),
    "module_instances": (("scope", "global_slug"),),
    "post_modules": (("post_id", "module_id"),),
    "post_custom_field_values": (("post_id", "field_slug"),),
    "preview_tokens": (("token",),),
})

# Tables whose primary key is an integer serial; their sequence is moved past
# the largest imported id once an id-preserving import has written rows.
SERIAL_ID_TABLES: frozenset[str] = frozenset({
    "users",
    "user_profiles",
    "activity_logs",
    "form_submissions",
    "webhook_deliveries",
})

CONTENT_TABLE = "posts"
MODULE_INSTANCE_TABLE = "module_instances"
MODULE_LINK_TABLE = "post_modules"

# Content-type discriminator column on the content table
CONTENT_TYPE_FIELD = "type"
DOCUMENTATION_TYPE = "documentation"

# Columns reset when a post-scoped module instance is cloned
CLONE_RESET_FIELDS: frozenset[str] = frozenset({
    "global_slug",
    "render_cache_html",
    "render_etag",
})

"""
Built-in migration steps for the key store schema.

The store persists a device's cryptographic identity and protocol state.
Every child table references the device row, so deleting a device cascades
to all of its keys, sessions and state.

Steps are only ever appended here. Released steps must not be edited,
reordered or removed, since databases in the field record how many of them
they have applied.
"""

from pysqlstore.storage.migrations.base import Migration, MigrationRegistry
from pysqlstore.storage.migrations.dialect import DialectSQL
from pysqlstore.storage.migrations.schema import AddColumn, Column, ColumnType, ForeignKey, Table

TABLE_PREFIX = "sqlstore_"

DEVICE_TABLE = f"{TABLE_PREFIX}device"
IDENTITY_KEYS_TABLE = f"{TABLE_PREFIX}identity_keys"
PRE_KEYS_TABLE = f"{TABLE_PREFIX}pre_keys"
SESSIONS_TABLE = f"{TABLE_PREFIX}sessions"
SENDER_KEYS_TABLE = f"{TABLE_PREFIX}sender_keys"
APP_STATE_SYNC_KEYS_TABLE = f"{TABLE_PREFIX}app_state_sync_keys"
APP_STATE_VERSION_TABLE = f"{TABLE_PREFIX}app_state_version"
APP_STATE_MUTATION_MACS_TABLE = f"{TABLE_PREFIX}app_state_mutation_macs"
CONTACTS_TABLE = f"{TABLE_PREFIX}contacts"
CHAT_SETTINGS_TABLE = f"{TABLE_PREFIX}chat_settings"
MESSAGE_SECRETS_TABLE = f"{TABLE_PREFIX}message_secrets"
PRIVACY_TOKENS_TABLE = f"{TABLE_PREFIX}privacy_tokens"

UINT32_RANGE = (0, 4294967296)
UINT24_RANGE = (0, 16777216)

BLOB = ColumnType.BLOB
TEXT = ColumnType.TEXT
VARCHAR = ColumnType.VARCHAR


def _device_fk(name: str, column: str = "our_jid") -> ForeignKey:
    return ForeignKey(
        name=name,
        columns=(column,),
        ref_table=DEVICE_TABLE,
        ref_columns=("jid",),
    )


# =============================================================================
# v1: initial schema
# =============================================================================

DEVICE = Table(
    name=DEVICE_TABLE,
    columns=(
        Column("jid", VARCHAR),
        Column("registration_id", ColumnType.BIGINT, nullable=False, value_range=UINT32_RANGE),
        Column("noise_key", BLOB, nullable=False, byte_length=32),
        Column("identity_key", BLOB, nullable=False, byte_length=32),
        Column("signed_pre_key", BLOB, nullable=False, byte_length=32),
        Column("signed_pre_key_id", ColumnType.INTEGER, nullable=False, value_range=UINT24_RANGE),
        Column("signed_pre_key_sig", BLOB, nullable=False, byte_length=64),
        Column("adv_key", BLOB, nullable=False),
        Column("adv_details", BLOB, nullable=False),
        Column("adv_account_sig", BLOB, nullable=False, byte_length=64),
        Column("adv_device_sig", BLOB, nullable=False, byte_length=64),
        Column("platform", TEXT, nullable=False),
        Column("business_name", TEXT, nullable=False),
        Column("push_name", TEXT, nullable=False),
    ),
    primary_key=("jid",),
)

IDENTITY_KEYS = Table(
    name=IDENTITY_KEYS_TABLE,
    columns=(
        Column("our_jid", VARCHAR),
        Column("their_id", TEXT),
        Column("identity", BLOB, nullable=False, byte_length=32),
    ),
    primary_key=("our_jid", "their_id"),
    foreign_keys=(_device_fk("fk_sqlstore_identity_keys"),),
)

PRE_KEYS = Table(
    name=PRE_KEYS_TABLE,
    columns=(
        Column("jid", VARCHAR),
        Column("key_id", ColumnType.INTEGER, value_range=UINT24_RANGE),
        Column("key", BLOB, nullable=False, byte_length=32),
        Column("uploaded", ColumnType.BOOLEAN, nullable=False),
    ),
    primary_key=("jid", "key_id"),
    foreign_keys=(_device_fk("fk_sqlstore_pre_keys", column="jid"),),
)

SESSIONS = Table(
    name=SESSIONS_TABLE,
    columns=(
        Column("our_jid", VARCHAR),
        Column("their_id", TEXT),
        Column("session", BLOB),
    ),
    primary_key=("our_jid", "their_id"),
    foreign_keys=(_device_fk("fk_sqlstore_sessions"),),
)

SENDER_KEYS = Table(
    name=SENDER_KEYS_TABLE,
    columns=(
        Column("our_jid", VARCHAR),
        Column("chat_id", TEXT),
        Column("sender_id", TEXT),
        Column("sender_key", BLOB, nullable=False),
    ),
    primary_key=("our_jid", "chat_id", "sender_id"),
    foreign_keys=(_device_fk("fk_sqlstore_sender_keys"),),
)

APP_STATE_SYNC_KEYS = Table(
    name=APP_STATE_SYNC_KEYS_TABLE,
    columns=(
        Column("jid", VARCHAR),
        Column("key_id", BLOB),
        Column("key_data", BLOB, nullable=False),
        Column("timestamp", ColumnType.BIGINT, nullable=False),
        Column("fingerprint", BLOB, nullable=False),
    ),
    primary_key=("jid", "key_id"),
    foreign_keys=(_device_fk("fk_sqlstore_app_state_sync_keys", column="jid"),),
)

APP_STATE_VERSION = Table(
    name=APP_STATE_VERSION_TABLE,
    columns=(
        Column("jid", VARCHAR),
        Column("name", VARCHAR),
        Column("version", ColumnType.BIGINT, nullable=False),
        Column("hash", BLOB, nullable=False, byte_length=128),
    ),
    primary_key=("jid", "name"),
    foreign_keys=(_device_fk("fk_sqlstore_app_state_version", column="jid"),),
)

APP_STATE_MUTATION_MACS = Table(
    name=APP_STATE_MUTATION_MACS_TABLE,
    columns=(
        Column("jid", VARCHAR),
        Column("name", VARCHAR),
        Column("version", ColumnType.BIGINT),
        Column("index_mac", BLOB, byte_length=32),
        Column("value_mac", BLOB, nullable=False, byte_length=32),
    ),
    primary_key=("jid", "name", "version", "index_mac"),
    foreign_keys=(
        ForeignKey(
            name="fk_sqlstore_app_state_mutation_macs",
            columns=("jid", "name"),
            ref_table=APP_STATE_VERSION_TABLE,
            ref_columns=("jid", "name"),
        ),
    ),
)

CONTACTS = Table(
    name=CONTACTS_TABLE,
    columns=(
        Column("our_jid", VARCHAR),
        Column("their_jid", TEXT),
        Column("first_name", TEXT),
        Column("full_name", TEXT),
        Column("push_name", TEXT),
        Column("business_name", TEXT),
    ),
    primary_key=("our_jid", "their_jid"),
    foreign_keys=(_device_fk("fk_sqlstore_contacts"),),
)

CHAT_SETTINGS = Table(
    name=CHAT_SETTINGS_TABLE,
    columns=(
        Column("our_jid", VARCHAR),
        Column("chat_jid", TEXT),
        Column("muted_until", ColumnType.BIGINT, nullable=False, default="0"),
        Column("pinned", ColumnType.BOOLEAN, nullable=False, default="false"),
        Column("archived", ColumnType.BOOLEAN, nullable=False, default="false"),
    ),
    primary_key=("our_jid", "chat_jid"),
    foreign_keys=(_device_fk("fk_sqlstore_chat_settings"),),
)


# =============================================================================
# v2: account signature key, backfilled from the device's own identity key
# =============================================================================

ADV_ACCOUNT_SIG_KEY = AddColumn(
    table=DEVICE_TABLE,
    column=Column("adv_account_sig_key", BLOB, byte_length=32),
)

# The device's own identity key is stored under the user part of its JID
# (everything before the first ".") followed by device id "0".
FILL_SIG_KEY = DialectSQL.of(
    postgres=[
        f"""
        UPDATE "{DEVICE_TABLE}" SET "adv_account_sig_key" = (
            SELECT "identity"
            FROM "{IDENTITY_KEYS_TABLE}"
            WHERE "our_jid" = "{DEVICE_TABLE}"."jid"
              AND "their_id" = concat(split_part("{DEVICE_TABLE}"."jid", '.', 1), '0')
        )
        """,
        f'DELETE FROM "{DEVICE_TABLE}" WHERE "adv_account_sig_key" IS NULL',
        f'ALTER TABLE "{DEVICE_TABLE}" ALTER COLUMN "adv_account_sig_key" SET NOT NULL',
    ],
    sqlite=[
        f"""
        UPDATE "{DEVICE_TABLE}" SET "adv_account_sig_key" = (
            SELECT "identity"
            FROM "{IDENTITY_KEYS_TABLE}"
            WHERE "our_jid" = "{DEVICE_TABLE}"."jid"
              AND "their_id" = (
                CASE WHEN instr("{DEVICE_TABLE}"."jid", '.') > 0
                     THEN substr("{DEVICE_TABLE}"."jid", 1, instr("{DEVICE_TABLE}"."jid", '.') - 1)
                     ELSE "{DEVICE_TABLE}"."jid"
                END
              ) || '0'
        )
        """,
    ],
)


# =============================================================================
# v3, v4
# =============================================================================

MESSAGE_SECRETS = Table(
    name=MESSAGE_SECRETS_TABLE,
    columns=(
        Column("our_jid", VARCHAR),
        Column("chat_jid", TEXT),
        Column("sender_jid", TEXT),
        Column("message_id", TEXT),
        Column("key", BLOB, nullable=False, byte_length=64),
    ),
    primary_key=("our_jid", "chat_jid", "sender_jid", "message_id"),
    foreign_keys=(_device_fk("fk_sqlstore_message_secrets"),),
)

PRIVACY_TOKENS = Table(
    name=PRIVACY_TOKENS_TABLE,
    columns=(
        Column("our_jid", TEXT),
        Column("their_jid", TEXT),
        Column("token", BLOB, nullable=False),
        Column("timestamp", ColumnType.BIGINT, nullable=False),
    ),
    primary_key=("our_jid", "their_jid"),
)


DEFAULT_MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        description="Initial key store schema",
        schema=(
            DEVICE,
            IDENTITY_KEYS,
            PRE_KEYS,
            SESSIONS,
            SENDER_KEYS,
            APP_STATE_SYNC_KEYS,
            APP_STATE_VERSION,
            APP_STATE_MUTATION_MACS,
            CONTACTS,
            CHAT_SETTINGS,
        ),
    ),
    Migration(
        description="Add adv_account_sig_key to devices and backfill it from identity keys",
        schema=(ADV_ACCOUNT_SIG_KEY,),
        up_sql=FILL_SIG_KEY,
    ),
    Migration(
        description="Add message secrets table",
        schema=(MESSAGE_SECRETS,),
    ),
    Migration(
        description="Add privacy tokens table",
        schema=(PRIVACY_TOKENS,),
    ),
)


def build_default_registry() -> MigrationRegistry:
    """Registry of the built-in key store steps."""
    return MigrationRegistry(DEFAULT_MIGRATIONS)

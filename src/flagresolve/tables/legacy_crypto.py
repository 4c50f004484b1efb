"""Legacy crypto configuration adjustments.

Generally a flag must be enabled explicitly by the user: enabling A when A
needs B, without enabling B, is a configuration error. This table lists the
cases where B is enabled automatically instead:

- B is an internal option identifying the part of a module that other
  modules use, and is not meant to be part of the public configuration.
- A did not depend on B in an earlier release, and configurations that
  enable A without B must keep working.

It also defines the provider-independent capabilities (ECDH, ECDSA sign and
verify, EC keys in PK) that can be supplied either by the builtin software
implementation or by a PSA driver.
"""

from __future__ import annotations

from flagresolve.core.capabilities import builtin, driver
from flagresolve.core.rules import RuleCategory
from flagresolve.core.validator import FlagFamily, MutualExclusion, SupersetConstraint
from flagresolve.tables.base import RuleTable

TABLE_NAME = "legacy-crypto"
TABLE_VERSION = "3.5.0"

HARD = RuleCategory.HARD_DEPENDENCY
LEGACY = RuleCategory.LEGACY_COMPAT
ALIAS = RuleCategory.INTERNAL_ALIAS

USE_PSA = "MBEDTLS_USE_PSA_CRYPTO"

# Modules that need MD_LIGHT but did not require it before it existed.
_MD_LIGHT_LEGACY_USERS = (
    "MBEDTLS_ECJPAKE_C",
    "MBEDTLS_PEM_PARSE_C",
    "MBEDTLS_ENTROPY_C",
    "MBEDTLS_PK_C",
    "MBEDTLS_PKCS12_C",
    "MBEDTLS_RSA_C",
    "MBEDTLS_SSL_TLS_C",
    "MBEDTLS_X509_USE_C",
    "MBEDTLS_X509_CREATE_C",
)

_CURVES = {
    "secp256r1": ("PSA_WANT_ECC_SECP_R1_256", "MBEDTLS_ECP_DP_SECP256R1_ENABLED"),
    "secp384r1": ("PSA_WANT_ECC_SECP_R1_384", "MBEDTLS_ECP_DP_SECP384R1_ENABLED"),
    "secp521r1": ("PSA_WANT_ECC_SECP_R1_521", "MBEDTLS_ECP_DP_SECP521R1_ENABLED"),
    "secp256k1": ("PSA_WANT_ECC_SECP_K1_256", "MBEDTLS_ECP_DP_SECP256K1_ENABLED"),
    "bp256r1": ("PSA_WANT_ECC_BRAINPOOL_P_R1_256", "MBEDTLS_ECP_DP_BP256R1_ENABLED"),
    "bp384r1": ("PSA_WANT_ECC_BRAINPOOL_P_R1_384", "MBEDTLS_ECP_DP_BP384R1_ENABLED"),
    "curve25519": ("PSA_WANT_ECC_MONTGOMERY_255", "MBEDTLS_ECP_DP_CURVE25519_ENABLED"),
    "curve448": ("PSA_WANT_ECC_MONTGOMERY_448", "MBEDTLS_ECP_DP_CURVE448_ENABLED"),
}


def _add_rules(table: RuleTable) -> None:
    rules = table.rules

    rules.add_rule(
        "MBEDTLS_MD_C", "MBEDTLS_MD_LIGHT", ALIAS,
        "MD_LIGHT is the subset of MD_C other modules use; checking MD_LIGHT "
        "alone covers both",
    )
    rules.add_rule(
        " || ".join(_MD_LIGHT_LEGACY_USERS), "MBEDTLS_MD_LIGHT", LEGACY,
        "these modules use MD_LIGHT but did not require it in previous releases",
    )

    rules.add_rule(
        "MBEDTLS_ECP_C", "MBEDTLS_ECP_LIGHT", ALIAS,
        "ECP_C consists of ECP_LIGHT plus curve arithmetic",
    )
    rules.add_rule(
        "MBEDTLS_PK_PARSE_EC_EXTENDED || MBEDTLS_PK_PARSE_EC_COMPRESSED",
        "MBEDTLS_ECP_LIGHT", LEGACY,
        "extended and compressed EC key parsing are not supported by PSA, so "
        "only the builtin EC support provides them",
    )
    rules.add_rule(
        "MBEDTLS_PSA_BUILTIN_KEY_TYPE_ECC_KEY_PAIR_DERIVE", "MBEDTLS_ECP_LIGHT", HARD,
        "Weierstrass key derivation depends on ECP_LIGHT",
    )

    rules.add_rule(
        "MBEDTLS_PK_PARSE_C && MBEDTLS_ECP_C", "MBEDTLS_PK_PARSE_EC_COMPRESSED", LEGACY,
        "before 3.5 compressed points were supported whenever PK_PARSE_C and "
        "ECP_C were enabled",
    )

    rules.add_rule(
        "MBEDTLS_PK_CAN_ECDSA_VERIFY || MBEDTLS_PK_CAN_ECDSA_SIGN",
        "MBEDTLS_PK_CAN_ECDSA_SOME", ALIAS,
        "PK can perform at least one ECDSA operation",
    )

    rules.add_rule(
        "MBEDTLS_PSA_CRYPTO_C", "MBEDTLS_PSA_CRYPTO_CLIENT", HARD,
        "the PSA core includes all PSA client code",
    )

    for flag in ("MBEDTLS_PK_C", "MBEDTLS_PK_WRITE_C", "MBEDTLS_PK_PARSE_C"):
        rules.add_rule(
            "MBEDTLS_PSA_CRYPTO_C && MBEDTLS_RSA_C", flag, HARD,
            "PK wrappers format RSA key objects with pk_write when dispatching "
            "to the PSA API",
        )


def _add_capabilities(table: RuleTable) -> None:
    caps = table.capabilities

    caps.register_capability(
        "ecdh",
        [
            builtin("MBEDTLS_ECDH_C", excludes=[USE_PSA]),
            driver(USE_PSA, "PSA_WANT_ALG_ECDH"),
        ],
        promote_to="MBEDTLS_CAN_ECDH",
        description="ECDH key agreement, through the library or through PSA",
    )
    caps.register_capability(
        "ecdsa-sign",
        [
            builtin("MBEDTLS_ECDSA_C", excludes=[USE_PSA]),
            driver(USE_PSA, "PSA_WANT_ALG_ECDSA", "PSA_WANT_KEY_TYPE_ECC_KEY_PAIR_BASIC"),
        ],
        promote_to="MBEDTLS_PK_CAN_ECDSA_SIGN",
        description="ECDSA signature generation in the PK module",
    )
    caps.register_capability(
        "ecdsa-verify",
        [
            builtin("MBEDTLS_ECDSA_C", excludes=[USE_PSA]),
            driver(USE_PSA, "PSA_WANT_ALG_ECDSA", "PSA_WANT_KEY_TYPE_ECC_PUBLIC_KEY"),
        ],
        promote_to="MBEDTLS_PK_CAN_ECDSA_VERIFY",
        description="ECDSA signature verification in the PK module",
    )
    caps.register_capability(
        "pk-ecc-keys",
        [
            builtin("MBEDTLS_ECP_C"),
            driver(USE_PSA, "PSA_WANT_KEY_TYPE_ECC_PUBLIC_KEY"),
        ],
        promote_to="MBEDTLS_PK_HAVE_ECC_KEYS",
        description="EC keys in PK, via legacy ECP or PSA EC key data",
    )


def _add_constraints(table: RuleTable) -> None:
    validator = table.validator
    validator.add_superset(
        SupersetConstraint(
            name="psa-curves-supported-by-ecp",
            required=FlagFamily.of("PSA requested curves", {k: v[0] for k, v in _CURVES.items()}),
            supported=FlagFamily.of("builtin ECP curves", {k: v[1] for k, v in _CURVES.items()}),
            when="MBEDTLS_PSA_CRYPTO_C && MBEDTLS_ECP_C",
        )
    )
    validator.add_exclusion(
        MutualExclusion(
            "MBEDTLS_ECDH_VARIANT_EVEREST_ENABLED", "MBEDTLS_ECDH_LEGACY_CONTEXT",
            "the Everest ECDH variant needs the opaque ECDH context",
        )
    )
    validator.add_exclusion(
        MutualExclusion(
            "MBEDTLS_ECP_RESTARTABLE", "MBEDTLS_ECDH_VARIANT_EVEREST_ENABLED",
            "restartable ECP is not implemented by the Everest variant",
        )
    )


def build_table() -> RuleTable:
    """Build and freeze a fresh copy of the legacy crypto table."""
    table = RuleTable(name=TABLE_NAME, version=TABLE_VERSION)
    _add_rules(table)
    _add_capabilities(table)
    _add_constraints(table)
    return table.freeze()

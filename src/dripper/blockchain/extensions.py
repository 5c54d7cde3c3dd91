"""Avail ``CheckAppId`` signed extension support.

substrate-interface only encodes the signed extensions it knows about, so
on Avail the app id would be missing from both the signing payload and the
extrinsic and the node would reject every transfer. ``AppIdSubstrateInterface``
swaps in codec classes that carry the app id field.
"""

import logging

from scalecodec.base import RuntimeConfigurationObject
from substrateinterface import SubstrateInterface

logger = logging.getLogger(__name__)

APP_ID_FIELD = "app_id"
APP_ID_TYPE = "Compact<u32>"

# Avail lists CheckAppId after every other extension with extrinsic data,
# so the field goes right before the call or the additional signed data
_EXTRINSIC_TAIL = ("call",)
_PAYLOAD_TAIL = (
    "spec_version",
    "transaction_version",
    "genesis_hash",
    "block_hash",
    "metadata_hash",
)


def with_app_id(type_mapping, before: tuple[str, ...]) -> list[list[str]]:
    """Return ``type_mapping`` with the app id inserted ahead of ``before``.

    Parameters
    ----------
    type_mapping : list
        Struct field list of ``[name, type]`` pairs.
    before : tuple[str, ...]
        Field names the app id must precede. The first one present wins;
        the app id is appended when none is present.

    Returns
    -------
    list[list[str]]
        A new field list. Unchanged if it already holds an app id.
    """
    mapping = [list(entry) for entry in type_mapping]
    if any(name == APP_ID_FIELD for name, _ in mapping):
        return mapping
    position = next(
        (index for index, (name, _) in enumerate(mapping) if name in before),
        len(mapping),
    )
    mapping.insert(position, [APP_ID_FIELD, APP_ID_TYPE])
    return mapping


class _AppIdFields:
    app_id = 0
    app_id_before: tuple[str, ...] = ()

    def _add_app_id(self) -> None:
        if self.type_mapping is not None:
            self.type_mapping = with_app_id(self.type_mapping, self.app_id_before)

    def process(self):
        self._add_app_id()
        return super().process()

    def process_encode(self, value):
        self._add_app_id()
        if isinstance(value, dict) and APP_ID_FIELD not in value:
            value = {**value, APP_ID_FIELD: self.app_id}
        return super().process_encode(value)


def register_app_id_types(runtime_config: RuntimeConfigurationObject, app_id: int) -> None:
    """Replace the extrinsic and signing payload codecs with app id aware ones.

    Parameters
    ----------
    runtime_config : RuntimeConfigurationObject
        Type registry of a connected ``SubstrateInterface``.
    app_id : int
        Value signed into every extrinsic.
    """
    for type_string, before in (
        ("ExtrinsicV4", _EXTRINSIC_TAIL),
        ("ExtrinsicPayloadValue", _PAYLOAD_TAIL),
    ):
        base = runtime_config.get_decoder_class(type_string)
        if issubclass(base, _AppIdFields):
            continue
        runtime_config.type_registry["types"][type_string.lower()] = type(
            f"AppId{type_string}",
            (_AppIdFields, base),
            {"app_id": app_id, "app_id_before": before},
        )


class AppIdSubstrateInterface(SubstrateInterface):
    """``SubstrateInterface`` for runtimes with the ``CheckAppId`` extension.

    The codecs are registered again after every type registry reload, which
    happens on runtime upgrades.

    Parameters
    ----------
    app_id : int
        App id signed into every extrinsic. Plain transfers use 0.
    """

    def __init__(self, *args, app_id: int = 0, **kwargs):
        # reload_type_registry runs inside the parent constructor
        self.app_id = app_id
        super().__init__(*args, **kwargs)

    def reload_type_registry(self, use_remote_preset: bool = True, auto_discover: bool = True):
        super().reload_type_registry(
            use_remote_preset=use_remote_preset, auto_discover=auto_discover
        )
        register_app_id_types(self.runtime_config, self.app_id)
        logger.debug("Registered CheckAppId codecs", extra={"app_id": self.app_id})

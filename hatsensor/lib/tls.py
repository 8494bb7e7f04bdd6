"""TLS context assembly for the mutually authenticated broker link."""

import os
import ssl

from hatsensor.lib.config import TLSSettings
from hatsensor.lib.exceptions import TLSConfigError
from hatsensor.logging import get_logger

logger = get_logger("lib.tls")


def create_tls_context(cfg: TLSSettings) -> ssl.SSLContext:
    """Build a client TLS context from PEM files.

    The broker is verified against the root CA and the device presents its
    own certificate and private key.

    Raises:
        TLSConfigError: If a file is missing or cannot be loaded.
    """
    for label, path in (
        ("Root CA certificate", cfg.root_ca_path),
        ("Client certificate", cfg.certificate_path),
        ("Private key", cfg.private_key_path),
    ):
        if not os.path.isfile(path):
            raise TLSConfigError(f"{label} not found at {path}")

    try:
        context = ssl.create_default_context(
            ssl.Purpose.SERVER_AUTH, cafile=cfg.root_ca_path
        )
        context.load_cert_chain(
            certfile=cfg.certificate_path, keyfile=cfg.private_key_path
        )
    except (ssl.SSLError, OSError, ValueError) as e:
        raise TLSConfigError(f"Failed to load TLS material: {e}") from e

    context.minimum_version = ssl.TLSVersion.TLSv1_2
    logger.info("Loaded client certificate %s", cfg.certificate_path)
    return context

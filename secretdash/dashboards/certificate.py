"""
Certificate TLS Dashboard.

Loads a PEM certificate and private key mounted by the CSI driver, reports
their validity and serves the dashboard over HTTPS with them.

Author: SecretDash Team
Date: 2026-09-09
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from fastapi import APIRouter

from ..core.config_manager import SecretStrategy
from ..exceptions import CertificateLoadError
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp, utc_now
from .policy import days_between

logger = logging.getLogger(__name__)

DEFAULT_CERT_PATH = "/etc/secrets/ssl-cert"
DEFAULT_KEY_PATH = "/etc/secrets/ssl-key"


def _read_pem(path: Path, kind: str) -> str:
    if not path.is_file():
        raise CertificateLoadError(str(path), f"{kind} not found")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CertificateLoadError(str(path), str(e))


def describe_certificate(pem: str, now=None) -> Dict[str, Any]:
    """
    Parse a PEM certificate into display fields.

    Args:
        pem: PEM-encoded certificate
        now: Reference time (default: current UTC time)

    Returns:
        Subject, issuer, validity window, serial number, SHA-256 fingerprint
        and expiration status fields
    """
    now = now or utc_now()
    cert = x509.load_pem_x509_certificate(pem.encode("utf-8"))
    valid_from = cert.not_valid_before_utc
    valid_to = cert.not_valid_after_utc

    days_left = days_between(now, valid_to)
    if days_left < 0:
        warning_status = "expired"
    elif days_left <= 7:
        warning_status = "critical"
    elif days_left <= 30:
        warning_status = "warning"
    else:
        warning_status = "valid"

    return {
        "subject": cert.subject.rfc4514_string(),
        "issuer": cert.issuer.rfc4514_string(),
        "validFrom": iso_timestamp(valid_from),
        "validTo": iso_timestamp(valid_to),
        "serialNumber": format(cert.serial_number, "X"),
        "fingerprint": cert.fingerprint(hashes.SHA256()).hex(":").upper(),
        "daysUntilExpiration": days_left,
        "isExpired": days_left < 0,
        "isExpiringSoon": 0 <= days_left <= 30,
        "warningStatus": warning_status,
        "ageDays": days_between(valid_from, now),
    }


class CertificateDashboard(Dashboard):
    """CSI dashboard that also exposes the mounted TLS certificate."""

    identity = DashboardIdentity(
        name="certificate-tls",
        app_name="Hello World - Certificate TLS",
        method="Certificate-Based TLS (CSI Driver)",
        strategy=SecretStrategy.CSI,
        description="Serves HTTPS with a certificate mounted from Key Vault",
    )

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.cert_path = Path(self.env("CERT_PATH", DEFAULT_CERT_PATH))
        self.key_path = Path(self.env("KEY_PATH", DEFAULT_KEY_PATH))
        self.certificate: Optional[str] = None
        self.private_key: Optional[str] = None
        self.load_certificates()

    def load_certificates(self) -> bool:
        """Read the certificate and key; failures are logged, not raised."""
        try:
            self.certificate = _read_pem(self.cert_path, "Certificate")
            logger.info(f"Certificate loaded from: {self.cert_path}")
            self.private_key = _read_pem(self.key_path, "Private key")
            logger.info(f"Private key loaded from: {self.key_path}")
            return True
        except CertificateLoadError as e:
            logger.error(f"Failed to load certificates: {e.message}")
            return False

    @property
    def tls_enabled(self) -> bool:
        return bool(self.certificate and self.private_key)

    @property
    def use_http(self) -> bool:
        return self.env("USE_HTTP").lower() == "true"

    def certificate_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "loaded": bool(self.certificate),
            "keyLoaded": bool(self.private_key),
            "certPath": str(self.cert_path),
            "keyPath": str(self.key_path),
            "certExists": self.cert_path.is_file(),
            "keyExists": self.key_path.is_file(),
            "certSize": len(self.certificate) if self.certificate else 0,
            "keySize": len(self.private_key) if self.private_key else 0,
            "tlsEnabled": self.tls_enabled,
        }
        if self.certificate:
            try:
                info.update(describe_certificate(self.certificate))
            except ValueError as e:
                info["parseError"] = str(e)
        return info

    @staticmethod
    def certificate_summary(info: Dict[str, Any]) -> Dict[str, Any]:
        has_valid_cert = bool(info.get("loaded") and info.get("keyLoaded"))
        expired = info.get("isExpired", False)
        expiring = info.get("isExpiringSoon", False)

        if not has_valid_cert:
            status = "error"
        elif expired:
            status = "expired"
        elif expiring:
            status = "expiring"
        else:
            status = "valid"

        if "daysUntilExpiration" not in info:
            expiration_status = "unknown"
        elif expired:
            expiration_status = "expired"
        elif expiring:
            expiration_status = "expiring-soon"
        else:
            expiration_status = "valid"

        return {
            "isHealthy": has_valid_cert and not expired and not expiring,
            "status": status,
            "hasValidCert": has_valid_cert,
            "expirationStatus": expiration_status,
        }

    async def secrets_payload(self) -> Dict[str, Any]:
        payload = await super().secrets_payload()
        payload["certificate"] = self.certificate_info()
        payload["tlsEnabled"] = self.tls_enabled
        payload["note"] = f"{self.note()}. Certificates available for TLS."
        return payload

    def health_extras(self) -> Dict[str, Any]:
        return {"tls": self.tls_enabled and not self.use_http}

    def server_options(self) -> Dict[str, Any]:
        if self.use_http:
            logger.info("Using HTTP mode (TLS handled by reverse proxy)")
            return {}
        if not self.tls_enabled:
            logger.error("Failed to load certificates. Starting HTTP server without TLS.")
            return {}
        return {"ssl_certfile": str(self.cert_path), "ssl_keyfile": str(self.key_path)}

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/certificate")
        @router.get("/api/cert")
        async def certificate() -> Dict[str, Any]:
            return self.certificate_info()

    async def page_panels(self) -> List[Panel]:
        info = self.certificate_info()
        summary = self.certificate_summary(info)
        level = {"valid": "success", "expiring": "warning"}.get(summary["status"], "danger")

        rows = [
            ("Status", summary["status"].upper()),
            ("TLS", "HTTPS Active" if self.tls_enabled and not self.use_http else "HTTP Only"),
            ("Certificate Path", info["certPath"]),
            ("Key Path", info["keyPath"]),
        ]
        for label, key in (
            ("Subject", "subject"),
            ("Issuer", "issuer"),
            ("Valid From", "validFrom"),
            ("Valid To", "validTo"),
            ("Days Until Expiration", "daysUntilExpiration"),
            ("Serial Number", "serialNumber"),
            ("Fingerprint (SHA-256)", "fingerprint"),
            ("Parse Error", "parseError"),
        ):
            if key in info:
                rows.append((label, info[key]))

        return [Panel(title="TLS Certificate", rows=rows, level=level)]

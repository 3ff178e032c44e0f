"""TLS trust material and SSL context helpers."""

import os
import ssl
from dataclasses import dataclass

import certifi


def expand_path(path: str | None) -> str | None:
    """Expand environment variables and user home directory in path."""
    if not path:
        return path
    return os.path.expanduser(os.path.expandvars(path))


@dataclass(frozen=True)
class TrustManager:
    """Trust material to load into an SSL context.

    Paired with an ssl.SSLContext via HttpRequest.ssl_socket_factory().
    Nothing is read from disk until the pair is applied at call time.

    Attributes:
        cafile: Path to a PEM bundle of CA certificates.
        capath: Directory of hashed CA certificates.
        cadata: PEM or DER encoded CA certificates.
    """

    cafile: str | None = None
    capath: str | None = None
    cadata: str | bytes | None = None

    def apply(self, context: ssl.SSLContext) -> ssl.SSLContext:
        """Load this trust material into an SSL context.

        Args:
            context: Context to load certificates into.

        Returns:
            The same context, for chaining.
        """
        if self.cafile or self.capath or self.cadata:
            context.load_verify_locations(
                cafile=expand_path(self.cafile),
                capath=expand_path(self.capath),
                cadata=self.cadata,
            )
        return context


def create_ssl_context(
    trust_manager: TrustManager | None = None,
    check_hostname: bool = True,
) -> ssl.SSLContext:
    """Create a client SSL context.

    Trusts the certifi bundle plus any extra trust material given.

    Args:
        trust_manager: Additional trust material.
        check_hostname: Whether to verify the server hostname.

    Returns:
        Configured SSL context.
    """
    context = ssl.create_default_context(cafile=certifi.where())
    if trust_manager is not None:
        trust_manager.apply(context)
    context.check_hostname = check_hostname
    return context


def copy_ssl_context(base: ssl.SSLContext, check_hostname: bool) -> ssl.SSLContext:
    """Create a client context with the verification settings of another.

    Carries over the protocol options, version bounds, verify mode and the
    CA certificates loaded into base, on top of the certifi bundle. Client
    certificate chains cannot be read back from an SSLContext and are not
    copied. base itself is left untouched.

    Args:
        base: Context to copy settings from.
        check_hostname: Whether to verify the server hostname.

    Returns:
        New SSL context.
    """
    context = create_ssl_context(check_hostname=check_hostname)
    context.options |= base.options
    context.minimum_version = base.minimum_version
    context.maximum_version = base.maximum_version
    if base.verify_mode == ssl.CERT_NONE:
        context.check_hostname = False
    context.verify_mode = base.verify_mode
    for der in base.get_ca_certs(binary_form=True):
        context.load_verify_locations(cadata=der)
    return context

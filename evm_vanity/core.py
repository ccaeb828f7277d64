"""
Key generation and address derivation for EVM accounts.

An EVM address is the last 20 bytes of Keccak-256 over the 64-byte
uncompressed secp256k1 public key (X || Y, without the 0x04 tag),
rendered with the EIP-55 mixed-case checksum.
"""

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives import serialization
from eth_utils import keccak, to_checksum_address

PRIVATE_KEY_SIZE = 32          # bytes
ADDRESS_HEX_LENGTH = 40        # hex chars after "0x"

# Serialization constants cached at module level for performance
_CURVE = ec.SECP256K1()
_X962 = serialization.Encoding.X962
_UNCOMPRESSED = serialization.PublicFormat.UncompressedPoint


class ProviderError(Exception):
    """The key provider could not produce a keypair.

    transient marks failures worth retrying (the worker retries those a
    few times); everything else ends the run.
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


def _address_from_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    point = public_key.public_bytes(_X962, _UNCOMPRESSED)
    return to_checksum_address("0x" + keccak(point[1:])[-20:].hex())


def generate_keypair() -> tuple[bytes, str]:
    """Generate one secp256k1 keypair and its address.

    This is the hot-path function called in the inner loop of each worker.
    Key material comes from the OS CSPRNG via the cryptography backend.

    Returns:
        (private_key_bytes, address)
        - private_key_bytes: 32-byte big-endian secret scalar
        - address: "0x" + 40 hex chars, EIP-55 checksummed
    """
    try:
        prv = ec.generate_private_key(_CURVE)
    except (ValueError, OSError) as e:
        raise ProviderError(f"key generation failed: {e}") from e

    secret = prv.private_numbers().private_value.to_bytes(PRIVATE_KEY_SIZE, "big")
    return secret, _address_from_public_key(prv.public_key())


def address_from_private_key(private_key: bytes) -> str:
    """Derive the checksummed address for a 32-byte private key.

    Raises ValueError if the key is the wrong size or out of curve range.
    """
    if len(private_key) != PRIVATE_KEY_SIZE:
        raise ValueError(
            f"Private key must be {PRIVATE_KEY_SIZE} bytes, got {len(private_key)}."
        )
    prv = ec.derive_private_key(int.from_bytes(private_key, "big"), _CURVE)
    return _address_from_public_key(prv.public_key())

import hashlib
import secrets


def generate_verification_code(length: int = 6) -> str:
    """Code numérique envoyé par email (réinitialisation du mot de passe)."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def generate_token(nbytes: int = 32) -> str:
    return secrets.token_hex(nbytes)


def hash_token(value: str) -> str:
    # Seule l'empreinte sha256 est stockée en base
    return hashlib.sha256(value.encode("utf-8")).hexdigest()

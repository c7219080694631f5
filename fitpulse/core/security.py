from passlib.context import CryptContext

# pbkdf2_sha256 is broadly compatible across Python versions and needs no
# native extension.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

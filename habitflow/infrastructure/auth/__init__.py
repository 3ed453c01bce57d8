from .sqlalchemy_auth_provider import SqlAlchemyAuthProvider

__all__ = ["SqlAlchemyAuthProvider"]

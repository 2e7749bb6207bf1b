from fastapi import HTTPException, status


class AppError(HTTPException):
    """
    Erreur métier prévue (opérationnelle).

    Le champ `status` vaut "fail" pour les erreurs client (4xx) et "error" sinon,
    c'est ce qui est renvoyé au frontend avec le message.
    """

    is_operational = True

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=message)
        self.message = message

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"


class BadRequestError(AppError):
    def __init__(self, message: str = "Requête invalide."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Authentification requise."):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Accès refusé."):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    def __init__(self, message: str = "Ressource non trouvée."):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    # Doublon : 400 comme pour la clé dupliquée MongoDB
    def __init__(self, message: str = "Valeur dupliquée."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)

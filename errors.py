from fastapi import HTTPException


class PlateShareError(HTTPException):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class InvalidArgument(PlateShareError):
    status_code = 400


class NotFound(PlateShareError):
    status_code = 404


class Conflict(PlateShareError):
    status_code = 409


class InvalidTransition(Conflict):
    pass


class Unavailable(PlateShareError):
    status_code = 503

"""Помилки бізнес-правил. Роутери віддають їх як {"detail": ...} з status_code."""


class TicketActionError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class IllegalTransition(TicketActionError):
    status_code = 400


class ActionForbidden(TicketActionError):
    status_code = 403


class InvalidAssignee(TicketActionError):
    status_code = 400

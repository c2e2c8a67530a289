"""Error kinds raised or recorded by the repertoire tree."""


class RepertoireError(Exception):
    code = "repertoire_error"

    def __init__(self, message: str, **detail):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail or None}


class UnknownParent(RepertoireError):
    """Insertion referenced a parent FEN that is not in the tree."""

    code = "unknown_parent"


class LabelKeyConflict(RepertoireError):
    """The same move from the same parent was claimed to reach two positions."""

    code = "label_key_conflict"


class TranspositionCollision(RepertoireError):
    """A FEN is held by more than one tree location; the index keeps only one."""

    code = "transposition_collision"


class RootMismatch(RepertoireError):
    code = "root_mismatch"


class MalformedInput(RepertoireError):
    code = "malformed_input"


class IllegalMove(RepertoireError):
    code = "illegal_move"

# store/exceptions.py
# Sentinel conditions raised by the store modules. The messaging service maps
# each class onto feedback.errors; nothing above the service sees these.


class StoreError(Exception):
    pass


class SubmissionNotFound(StoreError):
    pass


class MessageNotFound(StoreError):
    pass


class ProgramNotFound(StoreError):
    pass


class AccessDenied(StoreError):
    pass


class AlreadyDeleted(StoreError):
    pass

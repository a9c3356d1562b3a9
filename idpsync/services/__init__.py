"""Sync engine service layer."""

from idpsync.services.message_store import InsertOutcome, MergeResult, MessageStore  # noqa: F401
from idpsync.services.originated import OriginatedPoller  # noqa: F401
from idpsync.services.submitter import OutboundSubmitter, SubmissionResult  # noqa: F401
from idpsync.services.terminated import TerminatedStatusPoller  # noqa: F401

"""Form-side submission pipeline: formatting, image staging, step control and dispatch."""
from client.assembler import (
    IncompleteFormError,
    MissingImageError,
    SubmissionAssembler,
    SubmissionDispatchError,
    SubmissionOutcome,
)
from client.config import ClientSettings
from client.drafts import DraftStore
from client.image_compressor import compress_file, compress_image
from client.notifier import EmailNotifier, build_notification_body
from client.steps import FormStep, FormStepController, StagedImage
from client.validation import FieldError

__all__ = [
    "ClientSettings",
    "DraftStore",
    "EmailNotifier",
    "FieldError",
    "FormStep",
    "FormStepController",
    "IncompleteFormError",
    "MissingImageError",
    "StagedImage",
    "SubmissionAssembler",
    "SubmissionDispatchError",
    "SubmissionOutcome",
    "build_notification_body",
    "compress_file",
    "compress_image",
]

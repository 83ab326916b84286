"""
Fill the onboarding form from a JSON answers file and submit it.
Run: python -m scripts.submit_application answers.json (from the repository root).

answers.json holds the form fields by name plus an "images" object mapping
document kinds (id_front, id_back, payment_receipt, utility_receipt, signature)
to image file paths. Images already staged in the draft store may be omitted.
"""
import asyncio
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from client import (  # noqa: E402
    ClientSettings,
    DraftStore,
    EmailNotifier,
    FormStepController,
    IncompleteFormError,
    MissingImageError,
    SubmissionAssembler,
    SubmissionDispatchError,
)
from schemas.document import DocumentKind  # noqa: E402

logger = logging.getLogger("submit_application")


def _notifier(settings: ClientSettings):
    if not (settings.notify_email and settings.smtp_host):
        return None
    return EmailNotifier(
        settings.notify_email,
        smtp_server=settings.smtp_host,
        smtp_port=settings.smtp_port,
        sender_email=settings.smtp_sender,
        sender_password=settings.smtp_password,
    )


async def run(answers_path: str) -> int:
    settings = ClientSettings()
    with open(answers_path, encoding="utf-8") as f:
        answers = json.load(f)

    drafts = DraftStore(settings.draft_path)
    form = FormStepController(
        drafts,
        min_investment_amount=settings.min_investment_amount,
        max_image_width=settings.max_image_width,
        image_quality=settings.image_quality,
    )
    for kind, path in (answers.pop("images", None) or {}).items():
        form.attach_image(DocumentKind(kind), path)
    for name, value in answers.items():
        form.set_field(name, value)

    while not form.is_last_step:
        if not form.advance():
            break
    errors = form.errors if not form.is_last_step else form.validate_step()
    if errors:
        print(f"{form.progress_label}: fix the following before continuing:")
        for err in errors:
            print(f"  - {err.field}: {err.message}")
        return 1

    assembler = SubmissionAssembler(settings, drafts, notifier=_notifier(settings))
    try:
        outcome = await assembler.submit(form)
    except (IncompleteFormError, MissingImageError, SubmissionDispatchError) as exc:
        print(f"Submission failed: {exc}")
        return 1
    print(f"Application sent (HTTP {outcome.status_code}); notification sent: {outcome.notified}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(run(sys.argv[1])))

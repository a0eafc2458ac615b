from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from caseintake.adapters.intake import ReportSubmission, candidate_to_record
from caseintake.app import (
    approve,
    create_manual_candidate,
    detect_duplicates,
    file_report,
    list_audit_entries,
    list_pending_candidates,
    list_resolution_history,
    reject,
    run_detection,
)
from caseintake.config import configure_logging, get_reviewer_config
from caseintake.domain.duplicates import CandidateFilter, HistoryFilter
from caseintake.domain.errors import DuplicateEngineError
from caseintake.domain.intake import ReviewerSession
from caseintake.domain.model import CandidateStatus, MatchType

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import FrameType

    from caseintake.domain.model import DuplicateCandidate

log = logging.getLogger(__name__)

REVIEW_COMMANDS = frozenset({"approve", "reject", "link"})


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Detect and resolve duplicate case reports")
    parser.add_argument(
        "--reviewer",
        type=str,
        help="Reviewer user id (defaults to CASEINTAKE_REVIEWER)",
    )
    parser.add_argument(
        "--role",
        type=str,
        help="Reviewer role (defaults to CASEINTAKE_REVIEWER_ROLE or caseworker)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("detect", help="Scan all unmerged cases for duplicates")

    check = subparsers.add_parser("check", help="Run detection for specific cases")
    check.add_argument("case_ids", nargs="+", help="Case identifiers to check")

    pending = subparsers.add_parser("pending", help="List the review queue")
    pending.add_argument(
        "--match-type",
        type=MatchType,
        choices=list(MatchType),
        help="Only list candidates produced by this rule",
    )
    pending.add_argument(
        "--min-confidence",
        type=float,
        help="Only list candidates at or above this confidence",
    )

    approve_cmd = subparsers.add_parser("approve", help="Approve a candidate and merge cases")
    approve_cmd.add_argument("candidate_id", type=str, help="Candidate UUID")
    approve_cmd.add_argument(
        "--primary",
        type=str,
        required=True,
        help="Case that survives the merge",
    )
    approve_cmd.add_argument(
        "--duplicate",
        dest="duplicates",
        action="append",
        required=True,
        help="Case merged into the primary (repeatable)",
    )
    approve_cmd.add_argument("--notes", type=str, help="Optional reviewer notes")

    reject_cmd = subparsers.add_parser("reject", help="Dismiss a candidate")
    reject_cmd.add_argument("candidate_id", type=str, help="Candidate UUID")
    reject_cmd.add_argument("--reason", type=str, required=True, help="Why this is no duplicate")

    link = subparsers.add_parser("link", help="Manually flag two cases as duplicates")
    link.add_argument("primary_case_id", type=str)
    link.add_argument("duplicate_case_id", type=str)
    link.add_argument(
        "--confidence",
        type=float,
        default=1.0,
        help="Confidence recorded on the candidate (default: %(default)s)",
    )

    history = subparsers.add_parser("history", help="List resolved candidates")
    history.add_argument(
        "--status",
        type=CandidateStatus,
        choices=[CandidateStatus.APPROVED, CandidateStatus.REJECTED],
    )
    history.add_argument("--reviewed-by", type=str)
    history.add_argument("--case-id", type=str)
    history.add_argument("--match-type", type=MatchType, choices=list(MatchType))

    audit = subparsers.add_parser("audit", help="List resolution audit entries")
    audit.add_argument("--case-id", type=str)
    audit.add_argument("--reviewer-id", type=str)

    import_cmd = subparsers.add_parser("import", help="File reports from a JSON-lines file")
    import_cmd.add_argument("path", type=Path, help="File with one report submission per line")
    import_cmd.add_argument(
        "--reported-by",
        type=str,
        default="public",
        help="Actor recorded on the created history entries (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _load_submissions(path: Path) -> list[ReportSubmission]:
    submissions: list[ReportSubmission] = []
    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                submissions.append(ReportSubmission.model_validate(json.loads(line)))
            except ValueError as exc:
                raise ValueError(f"{path}:{line_number}: {exc}") from exc
    return submissions


def _open_session(args: argparse.Namespace) -> ReviewerSession:
    reviewer = get_reviewer_config(user_id=args.reviewer, role=args.role)
    return ReviewerSession.login(reviewer.user_id, role=reviewer.role)


def _emit(candidates: Iterable[DuplicateCandidate]) -> None:
    for candidate in candidates:
        sys.stdout.write(json.dumps(candidate_to_record(candidate).to_wire()) + "\n")


def _run(args: argparse.Namespace, submissions: Sequence[ReportSubmission]) -> None:
    if args.command == "detect":
        result = run_detection()
        _emit(result.created)
    elif args.command == "check":
        batch = detect_duplicates(args.case_ids)
        for case_id, candidates in batch.candidates.items():
            log.info("Case %s has %s pending candidate(s)", case_id, len(candidates))
            _emit(candidates)
        for case_id, message in batch.failed.items():
            log.error("Case %s could not be checked: %s", case_id, message)
    elif args.command == "pending":
        candidate_filter = CandidateFilter(
            match_type=args.match_type,
            min_confidence=args.min_confidence,
        )
        _emit(list_pending_candidates(candidate_filter))
    elif args.command == "history":
        history_filter = HistoryFilter(
            status=args.status,
            reviewed_by=args.reviewed_by,
            case_id=args.case_id,
            match_type=args.match_type,
        )
        _emit(list_resolution_history(history_filter))
    elif args.command == "audit":
        for entry in list_audit_entries(case_id=args.case_id, reviewer_id=args.reviewer_id):
            log.info(
                "%s %s by %s: %s <- %s (candidate %s)",
                entry.timestamp.isoformat(),
                entry.action.value,
                entry.actor,
                entry.primary_case_id,
                entry.duplicate_case_id,
                entry.candidate_id,
            )
    elif args.command == "import":
        for submission in submissions:
            case = file_report(submission, reported_by=args.reported_by)
            log.info("Imported case %s", case.id)
    elif args.command in REVIEW_COMMANDS:
        _run_review(args)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def _run_review(args: argparse.Namespace) -> None:
    session = _open_session(args)
    try:
        if args.command == "approve":
            candidate = approve(
                _parse_uuid(args.candidate_id),
                session=session,
                primary_case_id=args.primary,
                duplicate_case_ids=args.duplicates,
                notes=args.notes,
            )
        elif args.command == "reject":
            candidate = reject(
                _parse_uuid(args.candidate_id),
                session=session,
                reason=args.reason,
            )
        else:
            candidate = create_manual_candidate(
                args.primary_case_id,
                args.duplicate_case_id,
                session=session,
                confidence=args.confidence,
            )
        _emit([candidate])
    finally:
        session.logout()


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    submissions: list[ReportSubmission] = []
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "import":
            submissions = _load_submissions(parsed_args.path)
    except (ValueError, OSError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run(parsed_args, submissions)
    except (ValueError, DuplicateEngineError):
        log.exception("Rejected request")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point: load `.env`, install the SIGINT handler, run."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

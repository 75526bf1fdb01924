"""Urgent care check-in kiosk: returning-patient lookup and the five intake forms."""

import logging
import os
import sys
import uuid

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.status import Status

from urgent_care_intake.client import ClientInfo, client_info_from_request
from urgent_care_intake.config import get_settings
from urgent_care_intake.conversation import (
    field_label,
    generate_change_summary,
    generate_end_message,
    generate_greeting,
    generate_invalid_input_message,
    generate_not_found_message,
    generate_page_prompt,
    generate_patient_found_message,
    generate_session_expired_message,
    generate_throttled_message,
    is_affirmative,
    is_negative,
    parse_field_updates,
)
from urgent_care_intake.errors import InvalidInput, PatientNotFound, SessionError, Throttled
from urgent_care_intake.patient_intake.database.connection import init_database
from urgent_care_intake.returning_patient import LookupOutcome, build_service
from urgent_care_intake.state_machine import FormPage, IntakeState, get_next_page, page_fields

console = Console()
service = build_service()

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )


def kiosk_client() -> ClientInfo:
    """Client metadata for this terminal. Remote shells report their peer address."""
    ssh_client = os.getenv("SSH_CLIENT", "").split()
    headers = {"User-Agent": f"urgent-care-kiosk ({sys.platform})"}
    remote_addr = ssh_client[0] if ssh_client else "127.0.0.1"
    return client_info_from_request(headers, remote_addr, session_id=str(uuid.uuid4()))


def _start_session(state: IntakeState, outcome: LookupOutcome, is_returning: bool) -> None:
    state.patient_id = outcome.patient.id
    state.visit_id = outcome.visit_id
    state.lookup_session = outcome.session
    state.is_returning = is_returning


def handle_lookup(state: IntakeState, user_input: str) -> str:
    """Look up a returning patient, or start registration on 'new'."""
    text = user_input.strip()
    if text.lower() == "new":
        state.reset()
        state.current_page = FormPage.REGISTRATION
        return "Let's get you registered.\n\n" + generate_page_prompt(state)

    parts = text.split()
    if len(parts) != 2:
        return "Please enter your email and date of birth, for example `jane@example.com 1990-01-31`."
    email, dob = parts

    try:
        outcome = service.lookup(email, dob, state.client)
    except InvalidInput as e:
        return generate_invalid_input_message(e)
    except Throttled as e:
        return generate_throttled_message(e)
    except PatientNotFound:
        return generate_not_found_message()

    _start_session(state, outcome, is_returning=True)
    state.prefill(service.load_prefill(outcome.session))
    state.current_page = get_next_page(state)
    return generate_patient_found_message(outcome.patient, outcome.last_visit) + "\n\n" + generate_page_prompt(state)


def handle_form_page(state: IntakeState, user_input: str) -> str:
    """Collect field updates for the current page, or save it on 'yes'."""
    page = state.current_page

    # Pre-filled forms require a live lookup session
    if state.lookup_session is not None and not service.is_session_valid(state.lookup_session):
        state.reset()
        return generate_session_expired_message()

    updates = parse_field_updates(user_input)
    if updates:
        state.merge_fields(page, updates)
        unknown = [k for k in updates if k not in page_fields(page)]
        msg = ""
        if unknown:
            msg = "Not on this page: " + ", ".join(field_label(k) for k in unknown) + "\n\n"
        return msg + generate_page_prompt(state)

    if is_negative(user_input):
        return "No problem. Reply `field = value` for anything that needs changing.\n\n" + generate_page_prompt(state)

    if is_affirmative(user_input) and state.is_page_complete(page):
        return save_current_page(state)

    return generate_page_prompt(state)


def save_current_page(state: IntakeState) -> str:
    """Persist the current page and advance the wizard."""
    page = state.current_page
    values = dict(state.fields_for(page))

    try:
        if page == FormPage.REGISTRATION and state.lookup_session is None:
            outcome = service.register_new_patient(values, state.client)
            _start_session(state, outcome, is_returning=False)
            ack = "Thanks, you're registered."
        else:
            changes = service.save_page(state.lookup_session, page, values)
            ack = generate_change_summary(changes) if state.is_returning else "Saved."
    except InvalidInput as e:
        return generate_invalid_input_message(e)
    except SessionError:
        state.reset()
        return generate_session_expired_message()

    state.current_page = get_next_page(state)
    if state.current_page == FormPage.COMPLETE:
        state.lookup_session = None
        return ack + "\n\n" + generate_end_message()
    return ack + "\n\n" + generate_page_prompt(state)


def handle_refresh(state: IntakeState) -> str:
    """Extend the lookup session by another full timeout."""
    if state.lookup_session is None:
        return "There is no active session to extend."
    try:
        state.lookup_session = service.refresh_session(state.lookup_session)
    except SessionError:
        state.reset()
        return generate_session_expired_message()
    expires = state.lookup_session.expires_at.strftime("%H:%M")
    return f"Your session has been extended until {expires}."


def handle_restart(state: IntakeState) -> str:
    service.leave_flow(state.lookup_session)
    state.reset()
    return generate_greeting()


# Page handlers mapping
PAGE_HANDLERS = {
    FormPage.LOOKUP: handle_lookup,
    FormPage.REGISTRATION: handle_form_page,
    FormPage.MEDICAL_HISTORY: handle_form_page,
    FormPage.PATIENT_CONSENT: handle_form_page,
    FormPage.FINANCIAL_AGREEMENT: handle_form_page,
    FormPage.ADDITIONAL_CONSENTS: handle_form_page,
}


def process_input(state: IntakeState, user_input: str) -> str:
    """Process user input and return response."""
    command = user_input.strip().lower()
    if command == "refresh":
        return handle_refresh(state)
    if command == "restart":
        return handle_restart(state)

    handler = PAGE_HANDLERS.get(state.current_page)
    if handler:
        return handler(state, user_input)
    return generate_end_message()


def main():
    """Main kiosk loop."""
    settings = get_settings()
    configure_logging(settings.log_level)
    init_database(settings.database_path)

    console.print("[bold blue]Urgent Care Check-In[/bold blue]")
    console.print("Type 'refresh' to extend your session, 'restart' to start over, 'quit' to exit.\n")

    state = IntakeState(client=kiosk_client())
    console.print(Markdown(generate_greeting()), "\n")

    is_tty = sys.stdin.isatty()

    while state.current_page != FormPage.COMPLETE:
        try:
            user_input = console.input("[bold green]You:[/bold green] ").strip()
            # Echo input when stdin is piped (not interactive)
            if not is_tty and user_input:
                console.print(f"[dim]{user_input}[/dim]")
        except (EOFError, KeyboardInterrupt):
            console.print("\n[bold blue]Goodbye![/bold blue]")
            break

        if not user_input:
            continue

        if user_input.lower() in ("quit", "exit"):
            console.print("[bold blue]Goodbye![/bold blue]")
            break

        try:
            with Status("Saving...", console=console, spinner="dots"):
                response = process_input(state, user_input)
            console.print(Markdown(response), "\n")
        except Exception as e:
            logger.exception("Unhandled error while processing input")
            console.print(f"[bold red]Error:[/bold red] {e}\n")

    service.leave_flow(state.lookup_session)

    if state.current_page == FormPage.COMPLETE:
        console.print("[bold blue]Check-in complete.[/bold blue]")


if __name__ == "__main__":
    main()

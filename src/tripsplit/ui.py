"""Interactive prompts for entering expenses."""

import logging
from decimal import Decimal
from typing import Any, Literal

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import ExpenseDraft, Group, Member
from .money import convert_to_base, format_money, parse_amount, split_evenly

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="al" matches "Alice"
        query="bb" matches "Bobby"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class MemberCompleter(Completer):
    """Fuzzy search completer for group members."""

    def __init__(self, members: list[Member]):
        """Initialize the completer with the group's members."""
        self.members = members
        # First member wins on a repeated name, as in Group.resolve_member
        self.name_to_id: dict[str, str] = {}
        for member in members:
            self.name_to_id.setdefault(member.name, member.id)

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions for the last comma-separated name."""
        word = document.text_before_cursor.split(",")[-1].lstrip()
        query = word.lower()

        for member in self.members:
            if not query or fuzzy_match(query, member.name.lower()):
                yield Completion(
                    text=member.name,
                    start_position=-len(word),
                    display=member.name,
                )


def _prompt_text(session: PromptSession, message: str, default: str = "") -> str:
    return session.prompt(message, default=default).strip()


def select_member_interactive(
    group: Group, message: str, default: str = ""
) -> str | None:
    """
    Ask for one member by name with fuzzy completion.

    Returns:
        Member id, or None if the user skipped with Ctrl+C / empty input
    """
    completer = MemberCompleter(group.members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = _prompt_text(session, message, default)
            if not result:
                return None

            member_id = completer.name_to_id.get(result)
            if member_id:
                logger.debug(f"User selected member: {result}")
                return member_id

            print("❌ Unknown member. Press Tab to see the group's members.")
            default = ""
    except (KeyboardInterrupt, EOFError):
        return None


def select_members_interactive(
    group: Group, initial_ids: list[str] | None = None
) -> list[str] | None:
    """
    Ask for a comma-separated list of members to split with.

    The prompt is pre-filled with ``initial_ids``, or with everyone.

    Returns:
        Member ids, or None if the user cancelled with Ctrl+C / Ctrl+D
    """
    completer = MemberCompleter(group.members)
    session: PromptSession[str] = PromptSession(completer=completer)
    preselected = [group.member_by_id(mid) for mid in initial_ids or []]
    names = [m.name for m in preselected if m] or [m.name for m in group.members]
    default = ", ".join(names)

    try:
        while True:
            result = _prompt_text(session, "Split between: ", default)
            names = [name.strip() for name in result.split(",") if name.strip()]
            unknown = [name for name in names if name not in completer.name_to_id]
            if not unknown:
                return [completer.name_to_id[name] for name in names]

            print(f"❌ Unknown member(s): {', '.join(unknown)}")
            default = result
    except (KeyboardInterrupt, EOFError):
        return None


def prompt_custom_amounts(
    group: Group,
    member_ids: list[str],
    total: str | Decimal,
    initial: dict[str, str | Decimal] | None = None,
) -> dict[str, str] | None:
    """
    Ask for each member's share, pre-filled with an even split.

    The last member's pre-fill absorbs the rounding remainder so the defaults
    already add up to the total. Existing amounts in ``initial`` win over the
    even split.

    Returns:
        Typed amounts by member id, or None if the user cancelled
    """
    session: PromptSession[str] = PromptSession()
    defaults = split_evenly(member_ids, parse_amount(total))
    amounts: dict[str, str] = {}

    for member_id in member_ids:
        member = group.member_by_id(member_id)
        label = member.name if member else member_id
        value = (initial or {}).get(member_id, defaults.get(member_id, 0))
        default = format_money(parse_amount(value))
        try:
            amounts[member_id] = _prompt_text(session, f"  {label}: ", default)
        except (KeyboardInterrupt, EOFError):
            return None

    return amounts


def prompt_expense_interactive(
    group: Group, initial: ExpenseDraft | None = None
) -> ExpenseDraft | None:
    """
    Collect a full expense draft interactively.

    Args:
        group: Group the expense belongs to (for member completion)
        initial: Existing values when editing

    Returns:
        The draft, or None if the user cancelled
    """
    initial = initial or ExpenseDraft()
    session: PromptSession[str] = PromptSession()

    if initial.title:
        print(f"\n✏️  Edit: {initial.title}")
    else:
        print(f"\n🧾 New expense in {group.name}")

    try:
        title = _prompt_text(session, "Title: ", initial.title)
        amount = _prompt_text(session, "Amount: ", str(initial.amount))
    except (KeyboardInterrupt, EOFError):
        print("\n⏭️  Cancelled")
        return None

    payer_default = ""
    if initial.paid_by:
        payer = group.member_by_id(initial.paid_by)
        payer_default = payer.name if payer else ""
    elif group.members:
        payer_default = group.members[0].name

    paid_by = select_member_interactive(group, "Paid by: ", payer_default)
    if paid_by is None:
        print("\n⏭️  Cancelled")
        return None

    split_between = select_members_interactive(group, initial.split_between)
    if split_between is None:
        print("\n⏭️  Cancelled")
        return None

    mode: Literal["equal", "custom"] = "equal"
    custom_amounts: dict[str, str] | None = {}
    suggested = "Y/n" if initial.mode == "custom" else "y/N"
    try:
        answer = input(f"   Custom amounts? [{suggested}] ").strip().lower()
    except (KeyboardInterrupt, EOFError):
        print("\n⏭️  Cancelled")
        return None

    if not answer and initial.mode == "custom":
        answer = "y"
    if answer in ("y", "yes"):
        mode = "custom"
        # Shares are in the base currency
        total = parse_amount(amount)
        if initial.fx_rate:
            total = convert_to_base(total, parse_amount(initial.fx_rate))
        custom_amounts = prompt_custom_amounts(
            group, split_between, total, initial.custom_amounts
        )
        if custom_amounts is None:
            print("\n⏭️  Cancelled")
            return None

    return ExpenseDraft(
        title=title,
        amount=amount,
        paid_by=paid_by,
        split_between=split_between,
        mode=mode,
        custom_amounts=custom_amounts,
        currency=initial.currency,
        fx_rate=initial.fx_rate,
    )

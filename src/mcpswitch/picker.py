# Interactive terminal selection of tools for a platform
import sys

# ABOUTME: Terminal codes for interactive UI
CLEAR_SCREEN = "\033[2J\033[H"
BOLD = "\033[1m"
RESET = "\033[0m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
CYAN = "\033[96m"


class SelectionCancelled(Exception):
    """User pressed Ctrl+C in the selection screen."""


def parse_numbered_selection(user_input: str, items: list[str]) -> set[str]:
    """Parse '1,3,5' into the matching items.

    Raises:
        ValueError: If a part is not a number
    """
    selected: set[str] = set()
    for num_str in user_input.split(","):
        if not num_str.strip():
            continue
        idx = int(num_str.strip()) - 1
        if 0 <= idx < len(items):
            selected.add(items[idx])
    return selected


def interactive_select(items: list[str], preselected: set[str], title: str) -> list[str]:
    """Terminal-based multi-select without external dependencies.

    ABOUTME: Uses arrow keys, space, and enter for selection
    ABOUTME: Falls back to numbered input where termios is unavailable

    Args:
        items: List of items to select from
        preselected: Set of items that should start selected
        title: Heading shown above the list

    Returns:
        Selected items, in items order

    Raises:
        SelectionCancelled: If the user pressed Ctrl+C
    """
    if not items:
        return []

    selected: set[str] = set(preselected) & set(items)
    current_idx = 0

    try:
        import termios
        import tty
    except ImportError:
        return _numbered_select(items, selected, title)

    def getch() -> str:
        """Get a single character from stdin."""
        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setraw(fd)
            ch = sys.stdin.read(1)
            # Arrow keys arrive as three-character escape sequences
            if ch == "\x1b":
                ch += sys.stdin.read(2)
            return ch
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

    while True:
        print(CLEAR_SCREEN, end="")
        print(f"{BOLD}{title}{RESET}")
        print()

        for idx, item in enumerate(items):
            prefix = f"{GREEN}[x]{RESET}" if item in selected else "[ ]"
            cursor = f"{CYAN}>>>{RESET} " if idx == current_idx else "    "
            print(f"{cursor}{prefix} {item}")

        print()
        print("Use arrow keys to navigate, space to toggle, enter to confirm.")

        ch = getch()

        if ch == "\x1b[A":
            current_idx = (current_idx - 1) % len(items)
        elif ch == "\x1b[B":
            current_idx = (current_idx + 1) % len(items)
        elif ch == " ":
            current_item = items[current_idx]
            if current_item in selected:
                selected.remove(current_item)
            else:
                selected.add(current_item)
        elif ch in ("\r", "\n"):
            break
        elif ch == "\x03":
            print(CLEAR_SCREEN, end="")
            raise SelectionCancelled()

    print(CLEAR_SCREEN, end="")
    return [item for item in items if item in selected]


def _numbered_select(items: list[str], selected: set[str], title: str) -> list[str]:
    print(f"{BOLD}{title}{RESET}")
    print()
    for idx, item in enumerate(items):
        status = f" {YELLOW}[selected]{RESET}" if item in selected else ""
        print(f"  {idx + 1}. {item}{status}")

    print()
    print("Enter comma-separated numbers (e.g., 1,3,5) or press Enter to keep the current selection:")
    user_input = sys.stdin.readline().strip()

    if user_input:
        try:
            selected = parse_numbered_selection(user_input, items)
        except ValueError:
            print("Invalid input. Keeping the current selection.")

    return [item for item in items if item in selected]

helptext = """
`python -m natpunch` doesn't do anything on it's own.
Examples:

    Sign in, join (or create) a lobby and punch through to its peers:
    API_KEY=... python -m natpunch.apps punchthrough you@example.com yourpassword

    The password can be supplied through the environment instead:
    API_KEY=... NATPUNCH_PASSWORD=... python -m natpunch.apps punchthrough you@example.com

    Service locations can be overridden with NATPUNCH_USER_SESSION_URL,
    NATPUNCH_LOBBY_URL and NATPUNCH_PUNCHTHROUGH_URL.
"""


def main() -> None:
    print(helptext)


if __name__ == "__main__":
    main()

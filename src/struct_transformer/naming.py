from __future__ import annotations


def go_camel_case(name: str) -> str:
    """Convert a protobuf identifier to the Go name protoc-gen-go gives it.

    user_id -> UserId, Outer.Inner -> Outer_Inner, _x -> XX.
    """
    out = []
    i = 0
    n = len(name)
    while i < n:
        ch = name[i]
        if ch == "." and i + 1 < n and name[i + 1].islower():
            pass
        elif ch == ".":
            out.append("_")
        elif ch == "_" and (i == 0 or name[i - 1] == "."):
            out.append("X")
        elif ch == "_" and i + 1 < n and name[i + 1].islower():
            pass
        elif ch.isdigit():
            out.append(ch)
        else:
            out.append(ch.upper())
            while i + 1 < n and name[i + 1].islower():
                i += 1
                out.append(name[i])
        i += 1
    return "".join(out)


def struct_name(message_name: str) -> str:
    """Default domain struct name for a (possibly nested) message name."""
    return "".join(part[:1].upper() + part[1:] for part in message_name.split("."))

"""
Card commands accepted by the API.

A command is decoded once, from its JSON body, into one of three variants
tagged by "kind":

    {"kind": "dump", "keys": ["FF00A1A0B000", ...]}
    {"kind": "write", "sector": 13, "block": 2, "key": "FF00A1A0B001",
     "data": "FFFFFFFFFFFF00000000060504030201"}
    {"kind": "help"}

Key and data strings are kept as given; their validation belongs to the
key catalog and the write engine.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class DumpCommand(BaseModel):
    kind: Literal["dump"] = "dump"
    keys: list[str] = []


class WriteCommand(BaseModel):
    kind: Literal["write"] = "write"
    sector: int
    block: int
    key: str
    data: str


class HelpCommand(BaseModel):
    kind: Literal["help"] = "help"


Command = Annotated[Union[DumpCommand, WriteCommand, HelpCommand], Field(discriminator="kind")]

_command_adapter = TypeAdapter(Command)


def decode_command(payload: dict) -> Union[DumpCommand, WriteCommand, HelpCommand]:
    """Decode a command body. Raises pydantic.ValidationError if it matches no variant."""
    return _command_adapter.validate_python(payload)


USAGE = """\
Usage: POST /api/cards/command with one of:
  {"kind": "help"}
      show this help message
  {"kind": "dump", "keys": [KEYS...]}
      dump Mifare Classic 1K cards using KEYS, then the common default keys
  {"kind": "write", "sector": S, "block": B, "key": KEY, "data": DATA}
      write DATA to sector S, block B of Mifare Classic 1K cards using KEY
Examples:
  {"kind": "dump", "keys": ["FF00A1A0B000", "FF00A1A0B001", "FF00A1A0B099"]}
  {"kind": "write", "sector": 13, "block": 2, "key": "FF00A1A0B001", "data": "FFFFFFFFFFFF00000000060504030201"}
"""

"""Fetch units and the dynamically typed row shapes they produce."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

type RowMap = dict[str, typ.Any]
type FetchResult = dict[str, list[RowMap]]
type Matrix = list[list[str]]


@dc.dataclass(frozen=True, slots=True)
class Card:
    """An analytics card: the opaque UUID used to fetch it plus its title.

    The title keys the card's rows in a ``FetchResult``.
    """

    card_uuid: str
    title: str

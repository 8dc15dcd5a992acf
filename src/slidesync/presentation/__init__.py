"""Presentation side: deck notes files and the keyboard slide driver."""

from slidesync.presentation.deck import Deck, load_deck
from slidesync.presentation.keyboard import KeyboardPresentationDriver

__all__ = ["Deck", "KeyboardPresentationDriver", "load_deck"]

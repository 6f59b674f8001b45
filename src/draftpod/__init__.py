"""
draftpod v1.0 - Draft & Sealed Event Runner

Runs a single card game pod from seating through the draft, deckbuilding
and Swiss rounds to final standings. Every client polls one persisted
event document; all mutations go through the event controller.

Main components:
- timers: Pause/resume-safe countdown arithmetic
- pairing: Swiss pairing engine and standings calculator
- event: Data model, stage derivation, sequence guard and controller
- storage: Key-value event stores (in-memory and SQL) with expiry
- services: Read-modify-write orchestration and match reporting
- web: FastAPI HTTP surface
"""

__version__ = "1.0.0"

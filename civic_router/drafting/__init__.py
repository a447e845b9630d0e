from civic_router.drafting.composer import DraftComposer

__all__ = ["DraftComposer"]

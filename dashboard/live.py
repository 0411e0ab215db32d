import logging

from notifications.feed import feed as default_feed, ALL_TABLES

from .snapshot import scoped_view

logger = logging.getLogger(__name__)


class LiveScopedView:
    """
    Keeps one identity's scoped view current.

    Every change on any tracked table triggers a full recompute. `loader`
    defaults to reading the database and can be swapped for a function
    returning a view from in-memory data.

    The view holds a feed subscription until closed, so scope it to the
    consumer's lifetime:

        with LiveScopedView(request.identity, on_update=push) as live:
            push(live.view)
            ...

    `on_update` runs on the thread that committed the change.
    """

    def __init__(self, identity, loader=None, change_feed=None, on_update=None):
        self.identity = identity
        self._loader = loader or scoped_view
        self._feed = change_feed or default_feed
        self._on_update = on_update
        self.version = 0
        self.view = self._loader(identity)
        self._unsubscribe = self._feed.subscribe(ALL_TABLES, self._handle_change)

    def _handle_change(self, event):
        self.view = self._loader(self.identity)
        self.version += 1
        logger.debug("Recomputed view for user %s after %s on %s",
                     self.identity.user_id, event['event'], event['table'])
        if self._on_update is not None:
            self._on_update(self.view)

    @property
    def closed(self):
        return self._unsubscribe is None

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

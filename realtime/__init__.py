"""Realtime sync: change hub, per-client subscriptions, rooms and the Postgres listener."""

from realtime.hub import RealtimeHub, get_realtime_hub, reset_realtime_hub
from realtime.listener import PostgresChangeListener, start_realtime, stop_realtime
from realtime.rooms import ConnectionManager, get_connection_manager
from realtime.service import RealtimeService

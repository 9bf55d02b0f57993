"""Trigger subsystem: registry, handler loading and log interception."""

from dbquery.triggers.interceptor import TriggerInterceptor
from dbquery.triggers.loader import ModuleTriggerHandlerLoader
from dbquery.triggers.models import TriggerDescriptor
from dbquery.triggers.processor import FileTriggerProcessor
from dbquery.triggers.trigger import Trigger

__all__ = [
    "FileTriggerProcessor",
    "ModuleTriggerHandlerLoader",
    "Trigger",
    "TriggerDescriptor",
    "TriggerInterceptor",
]

"""Render host labels into the ``"labels":{...},`` object fragment."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..collector.base import Host, Label, LabelSource
from ..config import ConnectorConfig
from ..patterns import SimplePattern
from .sanitize import sanitize_json_string


@dataclass
class LabelPolicy:
    """Which host labels an instance is allowed to send."""

    send_configured: bool = True
    send_automatic: bool = False
    pattern: SimplePattern = field(default_factory=SimplePattern)

    @classmethod
    def from_config(cls, config: ConnectorConfig) -> "LabelPolicy":
        return cls(
            send_configured=config.send_configured_labels,
            send_automatic=config.send_automatic_labels,
            pattern=SimplePattern(config.send_labels_matching),
        )

    @property
    def enabled(self) -> bool:
        return self.send_configured or self.send_automatic

    def should_send(self, label: Label) -> bool:
        if label.source is LabelSource.AUTO:
            if not self.send_automatic:
                return False
        elif label.source is LabelSource.CONFIGURED:
            if not self.send_configured:
                return False
        else:
            return False
        return self.pattern.matches(label.key)


def format_host_labels(host: Host, policy: LabelPolicy) -> str | None:
    """Return the label fragment for *host*, or None when labels are disabled.

    The fragment ends with a comma so it can precede the chart fields.
    """
    if not policy.enabled:
        return None

    pairs = []
    for label in host.labels_snapshot():
        if not policy.should_send(label):
            continue
        pairs.append('"%s":"%s"' % (sanitize_json_string(label.key), sanitize_json_string(label.value)))

    return '"labels":{' + ",".join(pairs) + "},"

"""Unit tests for the logger rate-limit configuration helpers."""

from datetime import datetime

import pytest

from bcmguard.recovery.rsyslog import has_rate_limit_directive, rate_limit_addition, render_rate_limit_block

NOW = datetime(2026, 10, 18, 10, 0, 0)
BASE = "# rsyslog configuration\n$ModLoad imuxsock\n*.info /var/log/messages\n"


class TestRateLimit:

    def test_block_contents(self):
        block = render_rate_limit_block(5, 500, "bcm-recovery", NOW)

        assert "$SystemLogRateLimitInterval 5\n" in block
        assert "$SystemLogRateLimitBurst 500\n" in block
        assert "Added by bcm-recovery on Sun Oct 18 10:00:00 2026" in block

    def test_addition_only_when_missing(self):
        block = rate_limit_addition(BASE, 5, 500, "bcm-recovery", NOW)

        assert block == render_rate_limit_block(5, 500, "bcm-recovery", NOW)
        assert rate_limit_addition(BASE + block, 5, 500, "bcm-recovery", NOW) is None

    @pytest.mark.parametrize("text", [
        "$SystemLogRateLimitInterval 0\n",
        "  $SystemLogRateLimitInterval 10\n",
        'module(load="imuxsock" SysSock.RateLimit.Interval="5")\n',
    ])
    def test_existing_directive_detected(self, text):
        assert has_rate_limit_directive(BASE + text)

    @pytest.mark.parametrize("text", [
        "#$SystemLogRateLimitInterval 5\n",
        '# module(load="imuxsock" SysSock.RateLimit.Interval="5")\n',
        'module(load="imjournal" StateFile="imjournal.state" ratelimit.interval="0")\n',
        'input(type="imudp" port="514" ratelimit.interval="5")\n',
        "",
    ])
    def test_other_directives_ignored(self, text):
        assert not has_rate_limit_directive(BASE + text)

"""
Unit Tests for Queue Provisioning

Tests dead-letter queue creation, redrive policy construction,
configuration validation and the bounded ARN polling loop.

Author: PulseQueue Project
License: MIT
"""

import json
import pytest
from unittest.mock import Mock

from pulsequeue.config.schema import QueueConfig
from pulsequeue.errors import ConfigurationError, ProvisioningTimeoutError
from pulsequeue.queues.adapter import SqsAdapter
from pulsequeue.queues.priority import StandardPriorityHandler, ThreeLevelPriorityHandler
from pulsequeue.queues.provisioner import QueueProvisioner, RedrivePolicy


@pytest.fixture
def provisioner_for(clock):
    """Build a provisioner bound to a given fake service and the manual clock."""
    def build(service, **kwargs):
        return QueueProvisioner(
            service_factory=lambda client_config: service,
            clock=clock.time,
            sleep=clock.sleep,
            **kwargs
        )
    return build


def redrive(adapter: SqsAdapter) -> dict:
    return json.loads(adapter.attributes["RedrivePolicy"])


class TestProvisioning:
    """Test suite for QueueProvisioner.provision."""

    def test_without_dead_letter_queue(self, provisioner_for, fake_service, client_config):
        """No dead-letter name means no network calls and no redrive policy."""
        adapter = provisioner_for(fake_service).provision({
            "sqsClientConfig": client_config,
            "sqsAttributes": {"VisibilityTimeout": 10}
        })

        assert isinstance(adapter, SqsAdapter)
        assert adapter.attributes == {"VisibilityTimeout": 10}
        assert adapter.client_config == client_config
        assert isinstance(adapter.priority_handler, StandardPriorityHandler)
        assert fake_service.list_calls == 0
        assert fake_service.create_calls == []

    def test_creates_missing_dead_letter_queue(self, provisioner_for, fake_service, client_config):
        adapter = provisioner_for(fake_service).provision({
            "sqsClientConfig": client_config,
            "deadLetterQueueName": "jobs-dlq",
            "maxReceiveCount": 3
        })

        assert fake_service.create_calls == ["jobs-dlq"]
        assert redrive(adapter) == {
            "maxReceiveCount": 3,
            "deadLetterTargetArn": "arn:aws:sqs:us-east-1:123456789012:jobs-dlq"
        }

    def test_default_max_receive_count(self, provisioner_for, fake_service, client_config):
        """Omitted maxReceiveCount defaults to 10."""
        adapter = provisioner_for(fake_service).provision({
            "sqsClientConfig": client_config,
            "deadLetterQueueName": "jobs-dlq"
        })

        assert redrive(adapter)["maxReceiveCount"] == 10

    def test_redrive_merged_into_attributes(self, provisioner_for, fake_service, client_config):
        adapter = provisioner_for(fake_service).provision(QueueConfig(
            sqs_client_config=client_config,
            sqs_attributes={"VisibilityTimeout": 30},
            dead_letter_queue_name="jobs-dlq"
        ))

        assert adapter.attributes["VisibilityTimeout"] == 30
        assert "RedrivePolicy" in adapter.attributes

    def test_idempotent(self, provisioner_for, fake_service, client_config):
        """Provisioning twice leaves exactly one dead-letter queue."""
        provisioner = provisioner_for(fake_service)
        config = {"sqsClientConfig": client_config, "deadLetterQueueName": "jobs-dlq"}

        first = provisioner.provision(config)
        second = provisioner.provision(config)

        assert list(fake_service.queues) == ["jobs-dlq"]
        assert fake_service.create_calls == ["jobs-dlq"]
        assert redrive(first) == redrive(second)

    def test_existing_dead_letter_queue_not_recreated(self, provisioner_for, fake_service, client_config):
        fake_service.queues["jobs-dlq"] = "arn:aws:sqs:eu-west-1:1:jobs-dlq"

        adapter = provisioner_for(fake_service).provision({
            "sqsClientConfig": client_config,
            "deadLetterQueueName": "jobs-dlq"
        })

        assert fake_service.create_calls == []
        assert redrive(adapter)["deadLetterTargetArn"] == "arn:aws:sqs:eu-west-1:1:jobs-dlq"

    def test_tolerates_transient_lookup_errors(self, provisioner_for, make_service, clock, client_config):
        """A queue that becomes visible after a few lookups is accepted."""
        service = make_service(hidden_lookups=4)

        adapter = provisioner_for(service).provision({
            "sqsClientConfig": client_config,
            "deadLetterQueueName": "slow-dlq"
        })

        assert service.lookups == 5
        assert clock.sleeps == [1.0] * 4
        assert "RedrivePolicy" in adapter.attributes

    def test_times_out_at_deadline(self, provisioner_for, make_service, clock, client_config):
        """A never-resolvable queue fails after 120 seconds, not earlier or later."""
        service = make_service(never_visible=True)
        start = clock.time()

        with pytest.raises(ProvisioningTimeoutError) as exc_info:
            provisioner_for(service).provision({
                "sqsClientConfig": client_config,
                "deadLetterQueueName": "ghost-dlq"
            })

        elapsed = clock.time() - start
        assert elapsed == pytest.approx(120.0)
        assert exc_info.value.elapsed == pytest.approx(120.0)
        assert exc_info.value.queue_name == "ghost-dlq"
        assert isinstance(exc_info.value.last_error, RuntimeError)
        assert set(clock.sleeps) == {1.0}
        assert service.lookups == 120

    def test_custom_timeout_and_interval(self, provisioner_for, make_service, clock, client_config):
        service = make_service(never_visible=True)

        with pytest.raises(ProvisioningTimeoutError):
            provisioner_for(service, timeout=10, interval=2.5).provision({
                "sqsClientConfig": client_config,
                "deadLetterQueueName": "ghost-dlq"
            })

        assert clock.sleeps == [2.5] * 4


class TestProvisioningValidation:
    """Configuration errors surface before any network call."""

    def test_max_receive_count_requires_dead_letter_name(self, client_config):
        factory = Mock()
        provisioner = QueueProvisioner(service_factory=factory)

        with pytest.raises(ConfigurationError, match="dead-letter queue name required"):
            provisioner.provision({"sqsClientConfig": client_config, "maxReceiveCount": 5})

        factory.assert_not_called()

    def test_max_receive_count_check_on_unvalidated_model(self, client_config):
        """Models built without validation are still checked."""
        factory = Mock()
        config = QueueConfig.construct(
            priority_handler=None,
            sqs_client_config=client_config,
            sqs_attributes={},
            dead_letter_queue_name=None,
            max_receive_count=5
        )

        with pytest.raises(ConfigurationError):
            QueueProvisioner(service_factory=factory).provision(config)

        factory.assert_not_called()

    def test_client_config_required(self):
        with pytest.raises(ConfigurationError, match="sqsClientConfig"):
            QueueProvisioner(service_factory=Mock()).provision({"deadLetterQueueName": "dlq"})

    def test_unknown_priority_handler(self, client_config):
        with pytest.raises(ConfigurationError, match="priorityHandler"):
            QueueProvisioner(service_factory=Mock()).provision({
                "sqsClientConfig": client_config,
                "priorityHandler": "does-not-exist"
            })

    def test_named_priority_handler(self, client_config):
        adapter = QueueProvisioner(service_factory=Mock()).provision({
            "sqsClientConfig": client_config,
            "priorityHandler": "three_level"
        })

        assert isinstance(adapter.priority_handler, ThreeLevelPriorityHandler)

    def test_injected_priority_handler(self, client_config):
        handler = ThreeLevelPriorityHandler()
        provisioner = QueueProvisioner(service_factory=Mock(), priority_handlers={"urgent": handler})

        adapter = provisioner.provision({"sqsClientConfig": client_config, "priorityHandler": "urgent"})

        assert adapter.priority_handler is handler

    def test_import_path_priority_handler(self, client_config):
        adapter = QueueProvisioner(service_factory=Mock()).provision({
            "sqsClientConfig": client_config,
            "priorityHandler": "pulsequeue.queues.priority:ThreeLevelPriorityHandler"
        })

        assert isinstance(adapter.priority_handler, ThreeLevelPriorityHandler)

    def test_non_handler_import_rejected(self, client_config):
        with pytest.raises(ConfigurationError, match="not a PriorityHandler"):
            QueueProvisioner(service_factory=Mock()).provision({
                "sqsClientConfig": client_config,
                "priorityHandler": "json:dumps"
            })


class TestRedrivePolicy:

    def test_json_shape(self):
        policy = RedrivePolicy(max_receive_count=4, dead_letter_target_arn="arn:x")

        assert json.loads(policy.to_json()) == {"maxReceiveCount": 4, "deadLetterTargetArn": "arn:x"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""Tests for the verify-then-mutate batch protocol."""

import pytest

from weather_api.core.batch import (
    BatchConsistencyProtocol,
    BatchOutcome,
    DeleteAll,
    SetFields,
    SetRole,
)
from weather_api.core.identifiers import ValidationPolicy, new_object_id
from weather_api.models.credential import Role

STRICT = ValidationPolicy.STRICT
LENIENT = ValidationPolicy.LENIENT


class TestAllTargetsExist:
    async def test_role_change_applies_to_whole_set(self, credential_store):
        """Test that a role change reaches every credential in the set."""
        x = credential_store.add(Role.CLIENT)
        y = credential_store.add(Role.CLIENT)

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [x, y], SetRole(Role.STATION), STRICT
        )

        assert result.outcome is BatchOutcome.OK
        assert result.applied_count == result.verified_count == 2
        assert credential_store.roles[x] is Role.STATION
        assert credential_store.roles[y] is Role.STATION

    async def test_set_role_is_idempotent(self, credential_store):
        """Test that repeating a role change succeeds and changes nothing further."""
        keys = [credential_store.add(Role.CLIENT) for _ in range(3)]
        protocol = BatchConsistencyProtocol(credential_store)

        first = await protocol.apply_batch(keys, SetRole(Role.ADMIN), STRICT)
        state_after_first = dict(credential_store.roles)
        second = await protocol.apply_batch(keys, SetRole(Role.ADMIN), STRICT)

        assert first.outcome is second.outcome is BatchOutcome.OK
        assert second.applied_count == 3
        assert credential_store.roles == state_after_first

    async def test_duplicates_counted_once(self, credential_store):
        """Test that repeated and case-variant IDs count as one target."""
        key = credential_store.add(Role.CLIENT)

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [key, key, key.upper()], DeleteAll(), STRICT
        )

        assert result.outcome is BatchOutcome.OK
        assert result.requested_count == 1
        assert result.applied_count == 1

    async def test_set_fields_on_readings(self, reading_store):
        """Test that setFields writes a zero value on every reading."""
        a = reading_store.add(temperature_c=10.0)
        b = reading_store.add()

        result = await BatchConsistencyProtocol(reading_store).apply_batch(
            [a, b], SetFields({"latitude": 0.0}), STRICT
        )

        assert result.ok
        assert reading_store.docs[a]["latitude"] == 0.0
        assert reading_store.docs[b]["latitude"] == 0.0


class TestMissingTargets:
    async def test_revoke_with_missing_member_changes_nothing(self, credential_store):
        """Test that one unknown key aborts the revoke for the whole set."""
        a = credential_store.add(Role.CLIENT)
        c = credential_store.add(Role.CLIENT)
        b = new_object_id()

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [a, b, c], DeleteAll(), LENIENT
        )

        assert result.outcome is BatchOutcome.NOT_FOUND
        assert result.verified_count == 2
        assert result.applied_count == 0
        assert a in credential_store.roles
        assert c in credential_store.roles
        assert credential_store.mutations == 0

    async def test_rerunning_delete_reports_not_found(self, credential_store):
        """Test that deleting an already deleted set reports NOT_FOUND."""
        keys = [credential_store.add(Role.CLIENT) for _ in range(2)]
        protocol = BatchConsistencyProtocol(credential_store)

        first = await protocol.apply_batch(keys, DeleteAll(), LENIENT)
        second = await protocol.apply_batch(keys, DeleteAll(), LENIENT)

        assert first.outcome is BatchOutcome.OK
        assert second.outcome is BatchOutcome.NOT_FOUND
        assert second.verified_count == 0

    async def test_missing_reading_leaves_others_untouched(self, reading_store):
        """Test that existing readings keep their values when a sibling is missing."""
        a = reading_store.add(temperature_c=1.0)

        result = await BatchConsistencyProtocol(reading_store).apply_batch(
            [a, new_object_id()], SetFields({"temperature_c": 99.0}), STRICT
        )

        assert result.outcome is BatchOutcome.NOT_FOUND
        assert reading_store.docs[a]["temperature_c"] == 1.0


class TestInvalidInput:
    async def test_strict_rejects_any_malformed_identifier(self, credential_store):
        """Test that one malformed ID rejects a strict batch."""
        key = credential_store.add(Role.CLIENT)

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [key, "not-an-id"], SetRole(Role.ADMIN), STRICT
        )

        assert result.outcome is BatchOutcome.INVALID_INPUT
        assert credential_store.roles[key] is Role.CLIENT

    async def test_lenient_drops_malformed_identifiers(self, credential_store):
        """Test that a lenient batch ignores malformed IDs and applies to the rest."""
        key = credential_store.add(Role.CLIENT)

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [key, "not-an-id"], DeleteAll(), LENIENT
        )

        assert result.outcome is BatchOutcome.OK
        assert result.applied_count == 1
        assert key not in credential_store.roles

    async def test_empty_set_is_invalid(self, credential_store):
        """Test that an empty target list is INVALID_INPUT."""
        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [], DeleteAll(), STRICT
        )
        assert result.outcome is BatchOutcome.INVALID_INPUT

    async def test_all_malformed_under_lenient_is_invalid(self, credential_store):
        """Test that a lenient batch left with no IDs is INVALID_INPUT."""
        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            ["zzz", "yyy"], DeleteAll(), LENIENT
        )
        assert result.outcome is BatchOutcome.INVALID_INPUT


class TestStoreFailures:
    async def test_verification_failure_skips_mutation(self, credential_store):
        """Test that a failed count is STORE_ERROR and nothing is mutated."""
        key = credential_store.add(Role.CLIENT)
        credential_store.fail_on.add("count_existing")

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [key], DeleteAll(), STRICT
        )

        assert result.outcome is BatchOutcome.STORE_ERROR
        assert credential_store.mutations == 0
        assert key in credential_store.roles

    async def test_mutation_failure_is_store_error(self, credential_store):
        """Test that a failed mutation is STORE_ERROR with the verified count kept."""
        key = credential_store.add(Role.CLIENT)
        credential_store.fail_on.add("mutate_many")

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [key], SetRole(Role.ADMIN), STRICT
        )

        assert result.outcome is BatchOutcome.STORE_ERROR
        assert result.verified_count == 1
        assert result.applied_count == 0

    async def test_unsupported_mutation_is_raised(self, reading_store):
        """Test that a mutation the store cannot express raises and writes nothing."""
        reading_id = reading_store.add(temperature_c=1.0)

        with pytest.raises(TypeError):
            await BatchConsistencyProtocol(reading_store).apply_batch(
                [reading_id], SetRole(Role.ADMIN), STRICT
            )

        assert reading_store.docs[reading_id] == {
            "temperature_c": 1.0,
            "time": reading_store.docs[reading_id]["time"],
        }


class TestConcurrentChange:
    async def test_target_deleted_between_verify_and_mutate(self, credential_store):
        """Test that a target removed after verification surfaces as PARTIAL_EFFECT."""
        a = credential_store.add(Role.CLIENT)
        b = credential_store.add(Role.CLIENT)
        credential_store.before_mutate = lambda: credential_store.roles.pop(b)

        result = await BatchConsistencyProtocol(credential_store).apply_batch(
            [a, b], SetRole(Role.STATION), STRICT
        )

        assert result.outcome is BatchOutcome.PARTIAL_EFFECT
        assert result.verified_count == 2
        assert result.applied_count == 1
        assert credential_store.roles[a] is Role.STATION

"""Integration test: a stake travels through the facilitator in bulk batches.

Feeds subscription-shaped batches (event kind -> records) to the
TransactionHandler and verifies the stored message, request, anchor and
gateway state, including delivery out of order and replayed batches.
"""

import pytest

from facilitator.core.enums import EntityType, MessageStatus, MessageType

from conftest import ANCHOR, COGATEWAY, GATEWAY, STAKER_PROXY


def _confirmed():
    return {
        "_messageHash": "0xM",
        "_staker": STAKER_PROXY,
        "_stakerNonce": "1",
        "_hashLock": "0xlock",
        "contractAddress": COGATEWAY,
        "uts": "200",
    }


def _mint_progressed():
    return {
        "_messageHash": "0xM",
        "_staker": STAKER_PROXY,
        "_unlockSecret": "0xsecret",
        "contractAddress": COGATEWAY,
        "uts": "210",
    }


class TestStakeLifecycle:
    """A stake delivered in the order the chains emit it."""

    @pytest.mark.asyncio
    async def test_in_order(
        self,
        repos,
        transaction_handler,
        stake_requested_record,
        stake_intent_declared_record,
        stake_progressed_record,
    ):
        await transaction_handler.handle({"stakeRequesteds": [stake_requested_record]})
        await transaction_handler.handle(
            {"stakeIntentDeclareds": [stake_intent_declared_record]}
        )
        await transaction_handler.handle(
            {
                "stakeIntentConfirmeds": [_confirmed()],
                "stateRootAvailables": [
                    {"contractAddress": ANCHOR, "_blockHeight": "11", "uts": "150"},
                ],
                "gatewayProvens": [
                    {
                        "contractAddress": COGATEWAY,
                        "_gateway": GATEWAY,
                        "_blockHeight": "11",
                        "uts": "160",
                    },
                ],
            }
        )
        await transaction_handler.handle({"stakeProgresseds": [stake_progressed_record]})
        await transaction_handler.handle({"mintProgresseds": [_mint_progressed()]})

        message = await repos.message_repository.get("0xM")
        assert message.type == MessageType.STAKE
        assert message.source_status == MessageStatus.PROGRESSED
        assert message.target_status == MessageStatus.PROGRESSED
        assert message.gas_price == 2
        assert message.gas_limit == 300
        assert message.hash_lock == "0xlock"
        assert message.secret == "0xsecret"

        request = await repos.request_repository.get_by_message_hash("0xM")
        assert request.request_hash == "0xR1"

        anchor = await repos.anchor_repository.get(ANCHOR)
        assert anchor.last_anchored_block_number == 11
        gateway = await repos.gateway_repository.get(COGATEWAY)
        assert gateway.last_remote_gateway_proven_block_height == 11
        assert gateway.remote_gateway_address == GATEWAY

    @pytest.mark.asyncio
    async def test_out_of_order_single_batch(
        self,
        repos,
        transaction_handler,
        stake_requested_record,
        stake_intent_declared_record,
        stake_progressed_record,
    ):
        results = await transaction_handler.handle(
            {
                "mintProgresseds": [_mint_progressed()],
                "stakeProgresseds": [stake_progressed_record],
                "stakeIntentConfirmeds": [_confirmed()],
                "stakeIntentDeclareds": [stake_intent_declared_record],
                "stakeRequesteds": [stake_requested_record],
            }
        )
        assert len(results) == 5

        message = await repos.message_repository.get("0xM")
        assert message.source_status == MessageStatus.PROGRESSED
        assert message.target_status == MessageStatus.PROGRESSED
        assert message.source_declaration_block_height == 10
        assert message.gateway_address == GATEWAY

        # The request arrived after the declaration, so it is not linked.
        assert (await repos.request_repository.get("0xR1")).message_hash is None

    @pytest.mark.asyncio
    async def test_replayed_batch_changes_nothing(
        self,
        repos,
        transaction_handler,
        stake_intent_declared_record,
        stake_progressed_record,
    ):
        batch = {
            "stakeIntentDeclareds": [stake_intent_declared_record],
            "stakeProgresseds": [stake_progressed_record],
        }
        await transaction_handler.handle(batch)
        before = await repos.message_repository.get("0xM")

        assert await transaction_handler.handle(batch) == {}
        assert await repos.message_repository.get("0xM") == before

        marks = [
            await repos.contract_entity_repository.get(GATEWAY, kind)
            for kind in (EntityType.STAKE_INTENT_DECLAREDS, EntityType.STAKE_PROGRESSEDS)
        ]
        assert [m.timestamp for m in marks] == [90, 100]

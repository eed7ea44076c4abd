from ordview.chain import Chain
from ordview.model import OutPoint
from ordview.ordinals.ownership import OutputOwnershipResolver

from conftest import G1, G2, G3, P2PKH_ADDRESS, P2TR_ADDRESS, P2TR_SCRIPT, P2WPKH_ADDRESS


def test_outputs_for_block_skips_outputs_without_inscriptions(seeded) -> None:
    resolver = OutputOwnershipResolver(seeded.index)
    block = seeded.index.get_block_by_height(101)

    outputs = resolver.outputs_for_block(block)

    assert [(view.transaction, view.inscriptions) for view in outputs] == [
        (G2, [seeded.y]),
        (G3, [seeded.z1]),
        (G3, [seeded.z0]),
    ]
    assert [view.address for view in outputs] == [P2WPKH_ADDRESS, P2PKH_ADDRESS, P2TR_ADDRESS]
    assert [view.value for view in outputs] == [546, 600, 700]


def test_output_view_to_dict(seeded) -> None:
    resolver = OutputOwnershipResolver(seeded.index)

    (view,) = resolver.outputs_for_block(seeded.index.get_block_by_height(100))

    assert view.to_dict() == {
        "inscriptions": [str(seeded.x)],
        "value": 10_000,
        "script_pubkey": P2TR_SCRIPT.hex(),
        "address": P2TR_ADDRESS,
        "transaction": G1,
    }


def test_inscriptions_on_output(seeded) -> None:
    resolver = OutputOwnershipResolver(seeded.index, chain=Chain.TESTNET)

    assert resolver.inscriptions_on_output(OutPoint(G3, 1)) == [seeded.z0]
    assert resolver.inscriptions_on_output(OutPoint(G2, 1)) == []
    assert resolver.inscription_ids_for_transaction(seeded.g3) == [seeded.z1, seeded.z0]
    assert resolver.outputs_for_block(seeded.index.get_block_by_height(100))[0].address.startswith("tb1p")

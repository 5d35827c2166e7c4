import pytest

from tileworld.protocol import (
    AttackRequest,
    AvatarInfoPacket,
    ChatPacket,
    ChatRequest,
    EnterPacket,
    LeavePacket,
    LoginFailPacket,
    LoginFailReason,
    LoginRequest,
    MAX_CHAT_LENGTH,
    MAX_ID_LENGTH,
    MovePacket,
    MoveRequest,
    PacketType,
    StatChangePacket,
    SYSTEM_ID,
    TeleportRequest,
    decode_packet,
)

ALL_PACKETS = [
    AvatarInfoPacket(id=7, x=100, y=200, level=3, exp=40, max_exp=300, hp=90, max_hp=300),
    MovePacket(id=12, x=5, y=6, move_time=123456789),
    EnterPacket(id=10001, name="Agro NPC", o_type=1, x=10, y=11, hp=500, max_hp=500),
    LeavePacket(id=42),
    ChatPacket(id=SYSTEM_ID, message="hello world"),
    StatChangePacket(id=3, hp=10, max_hp=100, level=2, exp=5, max_exp=200),
    LoginFailPacket(id=0, reason=LoginFailReason.INVALID_ID),
    LoginRequest(name="player1"),
    MoveRequest(direction=2, move_time=99),
    AttackRequest(),
    ChatRequest(message="hi"),
    TeleportRequest(),
]


@pytest.mark.parametrize("packet", ALL_PACKETS)
def test_round_trip(packet):
    data = packet.pack()
    assert type(packet).unpack(data) == packet
    assert decode_packet(data) == packet


@pytest.mark.parametrize("packet", ALL_PACKETS)
def test_header_bytes(packet):
    data = packet.pack()
    assert data[0] == len(data) == type(packet).SIZE
    assert PacketType(data[1]) is packet.TYPE


@pytest.mark.parametrize("packet", ALL_PACKETS)
def test_decode_packet_dispatches(packet):
    assert decode_packet(packet.pack()) == packet


def test_attack_request_wire_bytes():
    assert AttackRequest().pack() == bytes([2, PacketType.C2S_ATTACK])


def test_login_request_layout():
    data = LoginRequest(name="abc").pack()
    assert len(data) == 2 + MAX_ID_LENGTH
    assert data[2:5] == b"abc"
    assert set(data[5:]) == {0}


def test_move_packet_size():
    data = MovePacket(id=0, x=0, y=0).pack()
    assert len(data) == 22
    assert data[0] == 22


def test_type_constants_match_header():
    assert LoginRequest(name="a").pack()[1] == 65
    assert LoginFailPacket(id=0, reason=LoginFailReason.UNKNOWN).pack()[1] == 9


def test_name_too_long_rejected():
    with pytest.raises(ValueError):
        LoginRequest(name="x" * MAX_ID_LENGTH).pack()


def test_chat_too_long_rejected():
    with pytest.raises(ValueError):
        ChatRequest(message="y" * MAX_CHAT_LENGTH).pack()


def test_out_of_range_integer_rejected():
    with pytest.raises(ValueError):
        MovePacket(id=1, x=1 << 20, y=0).pack()


def test_unpack_wrong_type():
    with pytest.raises(ValueError):
        LeavePacket.unpack(MovePacket(id=1, x=2, y=3).pack())


def test_unpack_truncated():
    data = StatChangePacket(id=1, hp=1, max_hp=1, level=1, exp=1, max_exp=1).pack()
    with pytest.raises(ValueError):
        StatChangePacket.unpack(data[:-1])


def test_unpack_ignores_trailing_bytes():
    packet = LeavePacket(id=9)
    assert LeavePacket.unpack(packet.pack() + b"\x01\x02") == packet


def test_unknown_type_rejected():
    with pytest.raises(ValueError):
        decode_packet(bytes([2, 50]))


def test_short_header_rejected():
    with pytest.raises(ValueError):
        decode_packet(b"\x01")


def test_name_without_terminator_is_read_fully():
    raw = bytearray(EnterPacket(id=1, name="", o_type=0, x=0, y=0, hp=0, max_hp=0).pack())
    raw[10:10 + MAX_ID_LENGTH] = b"N" * MAX_ID_LENGTH
    assert EnterPacket.unpack(bytes(raw)).name == "N" * MAX_ID_LENGTH
import pytest

from tileworld.client_state import (
    AVATAR_SPRITE,
    MAX_CNT_STORED_SYSTEM_MESS,
    MESSAGE_TIMEOUT,
    MONSTER_SPRITE,
    OTHER_NPC_SPRITE,
    PLAYER_SPRITE,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    ClientWorld,
    GameObject,
    PacketAssembler,
    login_failure_message,
)
from tileworld.protocol import (
    MAX_USER,
    SYSTEM_ID,
    AttackRequest,
    AvatarInfoPacket,
    ChatPacket,
    EnterPacket,
    LeavePacket,
    LoginFailPacket,
    LoginFailReason,
    MovePacket,
    StatChangePacket,
)


def _logged_in_world(my_id=7, x=50, y=60):
    world = ClientWorld()
    world.process_packet(
        AvatarInfoPacket(id=my_id, x=x, y=y, level=3, exp=10, max_exp=200,
                         hp=80, max_hp=100).pack(),
        0.0,
    )
    return world


def test_assembler_joins_split_packet():
    raw = MovePacket(id=5, x=1, y=2).pack()
    assembler = PacketAssembler()
    assert assembler.feed(raw[:3]) == []
    assert assembler.pending == 3
    assert assembler.feed(raw[3:]) == [raw]
    assert assembler.pending == 0


def test_assembler_splits_several_packets():
    first = LeavePacket(id=3).pack()
    second = MovePacket(id=4, x=9, y=9).pack()
    assembler = PacketAssembler()
    stream = first + second + first[:2]
    assert assembler.feed(stream) == [first, second]
    assert assembler.pending == 2


def test_assembler_rejects_zero_size():
    with pytest.raises(ValueError):
        PacketAssembler().feed(b"\x00\x02")


def test_avatar_info_centers_view():
    world = _logged_in_world(my_id=7, x=50, y=60)
    assert world.my_id == 7
    assert world.avatar.id == 7
    assert (world.avatar.x, world.avatar.y) == (50, 60)
    assert world.avatar.hp == 80 and world.avatar.max_hp == 100
    assert world.avatar.level == 3
    assert world.avatar.showing
    assert world.left_x == 50 - SCREEN_WIDTH // 2
    assert world.top_y == 60 - SCREEN_HEIGHT // 2
    assert world.avatar.sprite == AVATAR_SPRITE


def test_enter_player_and_npcs():
    world = _logged_in_world()
    world.process_packet(EnterPacket(id=20, name="alice", o_type=0, x=1, y=2,
                                     hp=5, max_hp=10).pack(), 0.0)
    world.process_packet(EnterPacket(id=MAX_USER + 1, name="orc", o_type=1, x=3, y=4,
                                     hp=6, max_hp=9).pack(), 0.0)
    world.process_packet(EnterPacket(id=MAX_USER + 2, name="elf", o_type=2, x=5, y=6,
                                     hp=6, max_hp=9).pack(), 0.0)
    alice = world.players[20]
    assert alice.name == "alice"
    assert alice.sprite == PLAYER_SPRITE
    assert alice.showing
    assert alice.name_color == "white"
    assert world.players[MAX_USER + 1].sprite == MONSTER_SPRITE
    assert world.players[MAX_USER + 1].name_color == "yellow"
    assert world.players[MAX_USER + 2].sprite == OTHER_NPC_SPRITE
    assert (world.players[MAX_USER + 2].x, world.players[MAX_USER + 2].y) == (5, 6)


def test_enter_self_moves_avatar():
    world = _logged_in_world(my_id=7)
    world.process_packet(EnterPacket(id=7, name="me", o_type=0, x=30, y=40,
                                     hp=1, max_hp=1).pack(), 0.0)
    assert (world.avatar.x, world.avatar.y) == (30, 40)
    assert 7 not in world.players


def test_move_and_leave():
    world = _logged_in_world(my_id=7)
    world.process_packet(MovePacket(id=7, x=100, y=120).pack(), 0.0)
    assert (world.avatar.x, world.avatar.y) == (100, 120)
    assert world.left_x == 100 - SCREEN_WIDTH // 2
    world.process_packet(MovePacket(id=33, x=4, y=5).pack(), 0.0)
    assert (world.players[33].x, world.players[33].y) == (4, 5)
    world.process_packet(LeavePacket(id=33).pack(), 0.0)
    assert 33 not in world.players
    world.process_packet(LeavePacket(id=7).pack(), 0.0)
    assert not world.avatar.showing


def test_system_message_expiry_and_order():
    world = _logged_in_world()
    world.process_packet(ChatPacket(id=SYSTEM_ID, message="old").pack(), 100.0)
    world.process_packet(ChatPacket(id=SYSTEM_ID, message="new").pack(), 101.0)
    assert world.visible_system_messages(101.0) == ["new", "old"]
    assert world.visible_system_messages(100.0 + MESSAGE_TIMEOUT + 0.5) == ["new"]
    assert world.visible_system_messages(101.0 + MESSAGE_TIMEOUT + 0.5) == []


def test_system_messages_capped():
    world = _logged_in_world()
    for n in range(MAX_CNT_STORED_SYSTEM_MESS + 3):
        world.process_packet(ChatPacket(id=SYSTEM_ID, message=f"m{n}").pack(), 5.0)
    shown = world.visible_system_messages(5.0)
    assert len(shown) == MAX_CNT_STORED_SYSTEM_MESS
    assert shown[0] == f"m{MAX_CNT_STORED_SYSTEM_MESS + 2}"


def test_npc_chat_sets_bubble():
    world = _logged_in_world()
    npc_id = MAX_USER + 5
    world.process_packet(ChatPacket(id=npc_id, message="grr").pack(), 10.0)
    npc = world.players[npc_id]
    assert npc.chat == "grr"
    assert npc.is_chatting(10.0)
    assert not npc.is_chatting(100.0)
    world.process_packet(ChatPacket(id=20, message="hi").pack(), 10.0)
    assert 20 not in world.players


def test_login_fail_closes():
    world = ClientWorld()
    world.process_packet(LoginFailPacket(id=0, reason=LoginFailReason.INVALID_ID).pack(), 0.0)
    assert world.closed
    assert world.login_failure == LoginFailReason.INVALID_ID


def test_stat_change_updates_avatar_and_others():
    world = _logged_in_world(my_id=7)
    world.process_packet(StatChangePacket(id=7, hp=11, max_hp=22, level=4,
                                          exp=33, max_exp=44).pack(), 0.0)
    assert (world.avatar.hp, world.avatar.max_hp, world.avatar.level,
            world.avatar.exp, world.avatar.max_exp) == (11, 22, 4, 33, 44)
    world.process_packet(StatChangePacket(id=50, hp=1, max_hp=2, level=3,
                                          exp=4, max_exp=5).pack(), 0.0)
    assert world.players[50].hp == 1
    assert world.players[50].max_exp == 5


def test_unknown_packet_ignored():
    world = _logged_in_world()
    assert world.process_packet(AttackRequest().pack(), 0.0) is None
    assert world.players == {}


def test_process_data_handles_stream():
    world = _logged_in_world(my_id=7)
    stream = MovePacket(id=8, x=1, y=1).pack() + LeavePacket(id=8).pack()
    packets = world.process_data(stream[:5], 0.0)
    assert packets == []
    packets = world.process_data(stream[5:], 0.0)
    assert [type(p) for p in packets] == [MovePacket, LeavePacket]
    assert 8 not in world.players


def test_login_failure_messages():
    assert login_failure_message(LoginFailReason.UNKNOWN) == (
        "login failure\nUnknown Error occurred")
    assert login_failure_message(LoginFailReason.OVER_MAX_LEN) == (
        "login failure\nID Exceeds the maximum allowed length")
    assert login_failure_message(LoginFailReason.INVALID_ID) == (
        "login failure\nInvalid ID: check your id")
    assert login_failure_message(42) == "login failure"


def test_game_object_show_hide_move():
    obj = GameObject(id=3)
    obj.show()
    assert obj.showing
    obj.hide()
    assert not obj.showing
    obj.move(8, 9)
    assert (obj.x, obj.y) == (8, 9)
    assert not obj.is_chatting(0.0)
PREFIX = 0x00     # every command starts with this byte

# queries (no operands)
GET_SPEED1   = 0x21
GET_SPEED2   = 0x22
GET_ENCODER1 = 0x23
GET_ENCODER2 = 0x24
GET_ENCODERS = 0x25
GET_VOLTS    = 0x26
GET_CURRENT1 = 0x27
GET_CURRENT2 = 0x28
GET_VERSION  = 0x29
GET_ACCEL    = 0x2A
GET_MODE     = 0x2B
GET_VI       = 0x2C
GET_ERROR    = 0x2D

# register writes
SET_SPEED1        = 0x31   # operand: speed byte
SET_SPEED2        = 0x32   # operand: speed / turn byte
SET_ACCEL         = 0x33   # operand: 1..10
SET_MODE          = 0x34   # operand: 0..3
RESET_ENCODERS    = 0x35
DISABLE_REGULATOR = 0x36
ENABLE_REGULATOR  = 0x37
DISABLE_TIMEOUT   = 0x38
ENABLE_TIMEOUT    = 0x39

# simulator extensions
SET_X         = 0x41   # operand: u16 BE mm
SET_Y         = 0x42   # operand: u16 BE mm
SET_ANGLE     = 0x43   # operand: u16 BE, 0.1 degree
SET_SIM_SPEED = 0x51   # operand: u16 BE, 10 = real time
GET_SIM_SPEED = 0x52

# fixed simulated telemetry
VERSION  = 1
VOLTS    = 24    # V
CURRENT1 = 10    # 1 = 100 mA
CURRENT2 = 10
ERROR    = 0     # healthy

# response sizes for query opcodes
RESPONSE_LEN = {
    GET_SPEED1:    1,
    GET_SPEED2:    1,
    GET_ENCODER1:  4,
    GET_ENCODER2:  4,
    GET_ENCODERS:  8,
    GET_VOLTS:     1,
    GET_CURRENT1:  1,
    GET_CURRENT2:  1,
    GET_VERSION:   1,
    GET_ACCEL:     1,
    GET_MODE:      1,
    GET_VI:        3,
    GET_ERROR:     1,
    GET_SIM_SPEED: 2,
}

# speed register value that means "stopped" in each mode
STOP_SPEED = {
    0: 128,
    1: 0,
    2: 128,
    3: 0,
}

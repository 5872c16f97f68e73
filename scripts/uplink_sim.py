import os, random, struct, time

import requests

from lora_connector.envelope import EnvelopeCodec
from lora_connector.schemas import UplinkEnvelope

API = os.getenv("API", "http://localhost:8000")
INSTALLATION_ID = os.getenv("INSTALLATION_ID", "")
INSTANCE_ID = os.getenv("INSTANCE_ID", "")
APPLICATION_ID = int(os.getenv("APPLICATION_ID", "1"))
DECODER = os.getenv("DECODER", "ldds75")
DEV_EUI = bytes.fromhex(os.getenv("DEV_EUI", "a840414d6182e088"))
INTERVAL = float(os.getenv("INTERVAL", "5"))

def ldds75_payload():
    battery_mv = random.randint(3200, 3400)
    distance_mm = random.randint(200, 1500)
    return struct.pack(">HHB", battery_mv, distance_mm, 0)

HEADER = bytes((0x01, 0x0C, 0x00, 0x00, 0xA9, 0x00))
RECORDS = 15
# record index holding the first half of each float, in frame order:
# max, min, pressure, upper limit, lower limit
FLOAT_RECORDS = (3, 5, 7, 9, 11)

def dcl571_payload():
    words = [b"\x00\x00"] * RECORDS
    values = (2.5, 0.4, round(random.uniform(0.5, 2.0), 3), 4.0, 0.0)
    for index, value in zip(FLOAT_RECORDS, values):
        b = struct.pack("<f", value)
        words[index], words[index + 1] = b[2:4], b[0:2]
    frame = bytearray(HEADER)
    for register, word in enumerate(words, start=1):
        frame += bytes((0x83, 0x04, register, 0x00)) + word
    return bytes(frame)

PAYLOADS = {"ldds75": ldds75_payload, "dcl571": dcl571_payload}

def main():
    if not INSTALLATION_ID or not INSTANCE_ID:
        raise SystemExit("INSTALLATION_ID and INSTANCE_ID must be set")
    codec = EnvelopeCodec(use_json=True)
    url = f"{API}/lorawan/{INSTALLATION_ID}/{INSTANCE_ID}"
    f_cnt = 0
    while True:
        f_cnt += 1
        body = codec.encode_uplink(UplinkEnvelope(
            application_id=APPLICATION_ID,
            application_name="simulated",
            device_name=DECODER,
            dev_eui=DEV_EUI,
            f_cnt=f_cnt,
            f_port=2 if DECODER == "ldds75" else 1,
            data=PAYLOADS[DECODER](),
        ))
        r = requests.post(url, params={"event": "up"}, data=body, headers={"Content-Type": "application/json"})
        print(r.status_code, r.text)
        time.sleep(INTERVAL)

if __name__ == "__main__":
    main()

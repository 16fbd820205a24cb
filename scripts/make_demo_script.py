from __future__ import annotations

from pathlib import Path

from sabi.script import load

DEMO = """\
# Demo script: two scenes joined by a jump.
scene id=`opening`
set type=background background=`school gate`
set type=GUI id=textbox sprite=`paper` mode=sliced
show character=Nayu emotion=smile position=left direction=right
info msg=`Spring. The gate smells of rain and cherry blossom.`
say character=Nayu msg=`You're late again!`
set type=emotion character=Nayu emotion=pout
set type=direction character=Nayu direction=left
psay msg=`Sorry, sorry. The train was slow.`
log msg=`opening done`
jump id=`classroom`
end

scene id=`classroom`
set type=background background=classroom transition=dissolve
set type=outfit character=Nayu outfit=uniform
move character=Nayu position=center
say character=Nayu msg=`Sit down before Sensei sees you.` emotion=neutral
hide character=Nayu fade=true
info msg=`The bell rings.`
halt
end
"""


def main() -> None:
    program = load(DEMO, "demo.sabi")

    out = Path("demo.sabi")
    out.write_text(DEMO, encoding="utf-8")
    print(f"wrote {out.resolve()} ({len(program.scenes)} scenes)")


if __name__ == "__main__":
    main()

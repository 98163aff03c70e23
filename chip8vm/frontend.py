"""
Interactive tkinter window for the CHIP-8 VM
Steps the emulator in real time, forwards keyboard events to the keypad
and shows a sound indicator while the sound timer is running.
"""

import tkinter as tk
from tkinter import Canvas

from .chip8 import DEFAULT_CYCLE_RATE, DISPLAY_HEIGHT, DISPLAY_WIDTH, Chip8Emulator
from .errors import Chip8Fault
from .keymap import QWERTY_LAYOUT, translate_key

FRAME_MS = 16


def run_window(emulator: Chip8Emulator, scale: int = 10, rate: int = DEFAULT_CYCLE_RATE,
               title: str = "CHIP-8"):
    """Show the display in a tkinter window and run until it is closed"""
    root = tk.Tk()
    root.title(title)
    root.resizable(False, False)

    closing = False
    steps_per_frame = max(1, round(rate * FRAME_MS / 1000))

    canvas = Canvas(root, width=DISPLAY_WIDTH * scale, height=DISPLAY_HEIGHT * scale, bg='black')
    canvas.pack()

    info_frame = tk.Frame(root)
    info_frame.pack(fill='x', padx=5, pady=5)
    tk.Label(info_frame,
             text="CHIP-8 Keypad Layout:\n"
                  "1 2 3 4    →    1 2 3 C\n"
                  "Q W E R    →    4 5 6 D\n"
                  "A S D F    →    7 8 9 E\n"
                  "Z X C V    →    A 0 B F\n\n"
                  "Press ESC to close",
             font=('Courier', 9), justify='left', bg='lightgray').pack(side='left')
    status = tk.Label(info_frame, text="", font=('Courier', 9), justify='right')
    status.pack(side='right')

    def close_window():
        nonlocal closing
        closing = True
        root.quit()
        root.destroy()

    def key_event(event, pressed: bool):
        if closing:
            return
        if pressed and event.keysym == 'Escape':
            close_window()
            return
        key = translate_key(event.keysym, QWERTY_LAYOUT)
        if key is not None:
            emulator.set_key(key, pressed)

    def draw():
        canvas.delete("all")
        for y in range(DISPLAY_HEIGHT):
            for x in range(DISPLAY_WIDTH):
                if emulator.display[y, x]:
                    x1 = x * scale
                    y1 = y * scale
                    canvas.create_rectangle(x1, y1, x1 + scale, y1 + scale,
                                            fill='white', outline='white')

    def update():
        if closing:
            return
        try:
            for _ in range(steps_per_frame):
                if not emulator.step():
                    break
        except Chip8Fault:
            # Already logged by the emulator; keep the last frame on screen
            pass

        try:
            draw()
            sound = "♪ SOUND" if emulator.get_sound_timer() > 0 else ""
            state = "CRASHED" if emulator.crashed else "running"
            status.config(text=f"PC: 0x{emulator.program_counter:03X}\n"
                               f"I: 0x{emulator.index_register:03X}\n"
                               f"{state} {sound}")
            root.after(FRAME_MS, update)
        except tk.TclError:
            # Window was destroyed mid-update
            pass

    root.bind('<KeyPress>', lambda event: key_event(event, True))
    root.bind('<KeyRelease>', lambda event: key_event(event, False))
    root.protocol("WM_DELETE_WINDOW", close_window)
    root.focus_set()

    update()
    root.mainloop()

"""RU: Стадии экспорта, выполняемые оркестратором `pipeline`.

`staging` готовит рабочую директорию для энкодера, `frames_stage` выгружает
кадры в папку без кодирования.

EN: Export stages driven by the `pipeline` orchestrator.

`staging` prepares the encoder working directory, `frames_stage` writes raw
frames to a folder without encoding.
"""

# learncheck/fallback.py
"""Fixed question sets served when live generation is not possible."""
from typing import Dict, List

from learncheck.schemas import Question

# (question, [A, B, C, D], correct, explanation)
_BANK_ID = [
    (
        "Apa keuntungan utama menggunakan React Hooks dibandingkan dengan Class Components?",
        ["Lebih cepat dalam rendering", "Syntax lebih sederhana dan mudah dipahami",
         "Mendukung lebih banyak lifecycle methods", "Kompatibilitas yang lebih baik dengan browser lama"],
        "B",
        "React Hooks memberikan syntax yang lebih ringkas untuk state management dan side effects, "
        "sehingga kode lebih mudah dibaca dan dipelihara.",
    ),
    (
        "Kapan sebaiknya menggunakan useEffect() dalam React?",
        ["Hanya untuk API calls", "Setiap kali ada state yang berubah",
         "Untuk side effects seperti data fetching, subscriptions, atau DOM manipulation", "Hanya di komponen class"],
        "C",
        "useEffect menangani side effects dalam functional components, termasuk data fetching, "
        "event listeners, dan cleanup.",
    ),
    (
        "Apa perbedaan antara props dan state dalam React?",
        ["Props bersifat mutable, state immutable", "Props untuk data dari parent, state untuk data internal component",
         "Props hanya untuk class components", "Tidak ada perbedaan, keduanya sama"],
        "B",
        "Props diberikan oleh parent component dan bersifat read-only, sedangkan state adalah data internal "
        "yang dapat diubah oleh component itu sendiri.",
    ),
    (
        "Apa yang dikembalikan oleh useState?",
        ["Hanya nilai state", "Hanya fungsi setter",
         "Array berisi nilai state dan fungsi setter", "Object berisi state dan methods"],
        "C",
        "useState mengembalikan array dua elemen: nilai state saat ini dan fungsi untuk memperbaruinya.",
    ),
    (
        "Mengapa setiap elemen dalam daftar yang di-render React membutuhkan prop key?",
        ["Agar elemen bisa diberi style", "Agar React dapat mengenali elemen yang berubah, ditambah, atau dihapus",
         "Agar elemen bisa menerima event", "Key hanya diperlukan di mode development"],
        "B",
        "Key membantu proses reconciliation sehingga React hanya memperbarui elemen yang benar-benar berubah.",
    ),
    (
        "Apa fungsi dependency array pada useEffect?",
        ["Menentukan kapan effect dijalankan ulang", "Menyimpan nilai state sebelumnya",
         "Mendaftarkan event listener global", "Mengatur urutan render komponen"],
        "A",
        "Effect dijalankan ulang hanya ketika salah satu nilai dalam dependency array berubah.",
    ),
    (
        "Apa yang dimaksud dengan komponen terkontrol (controlled component) pada form React?",
        ["Komponen yang tidak memiliki state", "Input yang nilainya dikelola oleh state React",
         "Komponen yang hanya bisa dipakai sekali", "Input yang dikelola langsung oleh DOM"],
        "B",
        "Pada controlled component, nilai input selalu berasal dari state dan diperbarui melalui handler.",
    ),
    (
        "Hook mana yang tepat untuk berbagi data ke banyak komponen tanpa prop drilling?",
        ["useRef", "useMemo", "useContext", "useLayoutEffect"],
        "C",
        "useContext membaca nilai dari Context Provider terdekat sehingga data tidak perlu diteruskan lewat props.",
    ),
    (
        "Apa kegunaan useMemo?",
        ["Menyimpan hasil perhitungan mahal agar tidak dihitung ulang setiap render",
         "Menyimpan referensi ke elemen DOM", "Menjalankan kode setelah komponen di-unmount",
         "Mengganti penggunaan useState"],
        "A",
        "useMemo melakukan memoization hasil perhitungan dan hanya menghitung ulang saat dependency berubah.",
    ),
    (
        "Apa yang terjadi ketika state sebuah komponen diperbarui?",
        ["Halaman dimuat ulang sepenuhnya", "Komponen dan turunannya di-render ulang",
         "Hanya komponen parent yang di-render ulang", "Tidak terjadi apa-apa sampai refresh"],
        "B",
        "Perubahan state memicu render ulang komponen tersebut beserta komponen anaknya.",
    ),
]

_BANK_EN = [
    (
        "What is the main advantage of React Hooks over class components?",
        ["Faster rendering", "Simpler, easier to read syntax",
         "Support for more lifecycle methods", "Better compatibility with old browsers"],
        "B",
        "Hooks give a more compact syntax for state and side effects, which keeps components readable and maintainable.",
    ),
    (
        "When should you use useEffect() in React?",
        ["Only for API calls", "Every time any state changes",
         "For side effects such as data fetching, subscriptions or DOM manipulation", "Only in class components"],
        "C",
        "useEffect handles side effects in function components, including data fetching, listeners and cleanup.",
    ),
    (
        "What is the difference between props and state in React?",
        ["Props are mutable, state is immutable", "Props come from the parent, state is internal to the component",
         "Props only exist in class components", "There is no difference"],
        "B",
        "Props are passed down by the parent and are read-only; state is internal data the component can change.",
    ),
    (
        "What does useState return?",
        ["Only the state value", "Only the setter function",
         "An array with the state value and a setter function", "An object with state and methods"],
        "C",
        "useState returns a two-element array: the current value and a function that updates it.",
    ),
    (
        "Why does every element of a rendered list need a key prop?",
        ["So it can be styled", "So React can tell which items changed, were added or removed",
         "So it can receive events", "Keys are only needed in development mode"],
        "B",
        "Keys drive reconciliation, letting React update only the list items that actually changed.",
    ),
    (
        "What does the dependency array of useEffect control?",
        ["When the effect runs again", "Where the previous state is stored",
         "Which global listeners are registered", "The render order of components"],
        "A",
        "The effect re-runs only when one of the values in its dependency array changes.",
    ),
    (
        "What is a controlled component in a React form?",
        ["A component without state", "An input whose value is driven by React state",
         "A component that can only be used once", "An input managed directly by the DOM"],
        "B",
        "A controlled input always takes its value from state and reports changes through a handler.",
    ),
    (
        "Which hook shares data with many components without prop drilling?",
        ["useRef", "useMemo", "useContext", "useLayoutEffect"],
        "C",
        "useContext reads the value of the nearest Context Provider, so data need not be passed through props.",
    ),
    (
        "What is useMemo for?",
        ["Caching an expensive computation between renders", "Holding a reference to a DOM node",
         "Running code after unmount", "Replacing useState"],
        "A",
        "useMemo memoizes a computed value and recomputes it only when its dependencies change.",
    ),
    (
        "What happens when a component's state is updated?",
        ["The whole page reloads", "The component and its children re-render",
         "Only the parent component re-renders", "Nothing until the page is refreshed"],
        "B",
        "A state change schedules a re-render of that component and its subtree.",
    ),
]

_BANKS: Dict[str, list] = {"id": _BANK_ID, "en": _BANK_EN}


def get_fallback_questions(count: int = 3, language: str = "id") -> List[Question]:
    """Return the first `count` fallback questions, numbered 1..count."""
    bank = _BANKS.get(language, _BANK_ID)
    count = max(1, min(count, len(bank)))
    questions = []
    for index, (text, options, correct, explanation) in enumerate(bank[:count]):
        questions.append(
            Question(
                id=index + 1,
                question=text,
                options=[{"id": letter, "text": opt} for letter, opt in zip("ABCD", options)],
                correct_answer=correct,
                explanation=explanation,
            )
        )
    return questions
